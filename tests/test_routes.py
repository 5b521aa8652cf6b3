"""HTTP API: text/image search, additive lookup and catalog administration."""
import base64
import io

import pytest

from additive_search.catalog import CatalogCache

from app import create_app
from conftest import FakeStore


@pytest.fixture
def client(store):
    app = create_app({'TESTING': True}, catalog=CatalogCache.from_store(store))
    return app.test_client()


@pytest.fixture
def ocr_client(store):
    app = create_app({'TESTING': True}, ocr=lambda image: '구연산, 아스파탐',
                     catalog=CatalogCache.from_store(store))
    return app.test_client()


class TestTextSearch:
    def test_exact_match(self, client):
        resp = client.post('/api/search/text', json={'text': '구연산'})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body['success'] is True
        [additive] = body['data']['additives']
        assert additive['id'] == 'citric-acid'
        assert additive['matchType'] == 'exact'
        assert additive['matchScore'] == 1.0

    def test_no_matches(self, client):
        resp = client.post('/api/search/text', json={'text': '물, 소금, 설탕'})
        assert resp.status_code == 200
        assert resp.get_json()['data']['additives'] == []

    @pytest.mark.parametrize('payload', [{}, {'text': ''}, {'text': '   '}, {'text': 42}])
    def test_text_required(self, client, payload):
        resp = client.post('/api/search/text', json=payload)
        assert resp.status_code == 400
        assert resp.get_json()['success'] is False

    def test_non_json_body(self, client):
        resp = client.post('/api/search/text', data='구연산', content_type='text/plain')
        assert resp.status_code == 400

    def test_oversized_text(self, client):
        resp = client.post('/api/search/text', json={'text': 'a' * 200_001})
        assert resp.status_code == 400


class TestImageSearch:
    def test_ocr_not_configured(self, client):
        resp = client.post('/api/search/image', json={'imageBase64': 'aGVsbG8='})
        assert resp.status_code == 503

    def test_base64_image(self, ocr_client):
        encoded = base64.b64encode(b'\x89PNG fake image').decode()
        resp = ocr_client.post('/api/search/image', json={'imageBase64': f'data:image/png;base64,{encoded}'})
        assert resp.status_code == 200
        data = resp.get_json()['data']
        assert data['status'] == 'completed'
        assert data['extractedText'] == '구연산, 아스파탐'
        assert {a['id'] for a in data['additives']} == {'citric-acid', 'aspartame'}
        # equal scores: high hazard first
        assert data['additives'][0]['id'] == 'aspartame'

    def test_multipart_image(self, ocr_client):
        resp = ocr_client.post('/api/search/image',
                               data={'image': (io.BytesIO(b'fake image'), 'label.jpg')},
                               content_type='multipart/form-data')
        assert resp.status_code == 200
        assert resp.get_json()['data']['status'] == 'completed'

    @pytest.mark.parametrize('payload', [{}, {'imageBase64': ''}, {'imageBase64': '!!not base64!!'}])
    def test_invalid_image(self, ocr_client, payload):
        resp = ocr_client.post('/api/search/image', json=payload)
        assert resp.status_code == 400


class TestAdditives:
    def test_lookup(self, client):
        resp = client.get('/api/additives/msg')
        assert resp.status_code == 200
        data = resp.get_json()['data']
        assert data['name'] == '글루탐산나트륨'
        assert data['aliases'] == ['미원']
        assert data['hazard_level'] == 'medium'

    def test_unknown_id(self, client):
        assert client.get('/api/additives/unobtainium').status_code == 404


class TestCatalogAdmin:
    def test_status_after_warm_start(self, client, store):
        body = client.get('/api/catalog/status').get_json()
        assert body['state'] == 'loaded'
        assert body['source'] == 'live'
        assert body['entries'] == 6
        assert store.calls == 1

    def test_searches_reuse_snapshot(self, client, store):
        for text in ('구연산', '아스파탐', '미원'):
            client.post('/api/search/text', json={'text': text})
        assert store.calls == 1

    def test_refresh(self, client, store):
        body = client.post('/api/catalog/refresh').get_json()
        assert body['fetch_count'] == 2
        assert store.calls == 2

    def test_health(self, client):
        assert client.get('/api/health').get_json() == {'status': 'ok', 'catalog': 'loaded'}


def test_default_app_uses_sqlite_and_falls_back(tmp_path):
    db_path = tmp_path / 'data' / 'additives.db'
    app = create_app({'TESTING': True, 'CATALOG_DB_PATH': str(db_path)})
    assert db_path.exists()

    client = app.test_client()
    status = client.get('/api/catalog/status').get_json()
    assert status['state'] == 'fallback'
    assert status['entries'] == 53

    resp = client.post('/api/search/text', json={'text': '안식향산나트륨'})
    assert resp.get_json()['data']['additives'][0]['id'] == 'sodium-benzoate'


def test_refresh_failure_returns_500():
    def missing_fallback():
        raise OSError('fallback catalog missing')

    cache = CatalogCache.from_store(FakeStore(error=RuntimeError('store down')),
                                    fallback=missing_fallback)
    app = create_app({'TESTING': True, 'WARM_CATALOG': False}, catalog=cache)
    resp = app.test_client().post('/api/catalog/refresh')
    assert resp.status_code == 500
    assert resp.get_json()['success'] is False
    assert cache.status()['state'] == 'empty'

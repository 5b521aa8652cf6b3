"""OCR → search orchestration under a deadline."""
import asyncio
import time

from additive_search.catalog import CatalogCache
from additive_search.match import AdditiveMatcher
from additive_search.pipeline import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_NO_TEXT,
    STATUS_TIMEOUT,
    OcrSearchPipeline,
    is_usable_text,
    search_with_deadline,
)

from conftest import FakeStore, run

LABEL = '원재료명: 정제수, 구연산, 안식향산나트륨(보존료)'


def test_is_usable_text():
    assert is_usable_text('구연산')
    assert is_usable_text('BHA')
    assert not is_usable_text('  ')
    assert not is_usable_text('12')
    assert not is_usable_text('1234567')
    assert not is_usable_text('구연산', min_length=5)


def test_sync_ocr_completed(matcher):
    pipeline = OcrSearchPipeline(matcher, lambda image: LABEL)
    result = run(pipeline.run(b'\x89PNG'))
    assert result.status == STATUS_COMPLETED
    assert result.extracted_text == LABEL
    ids = [a.id for a in result.additives]
    assert 'citric-acid' in ids
    assert 'sodium-benzoate' in ids
    assert result.error is None


def test_async_ocr_completed(matcher):
    async def ocr(image):
        await asyncio.sleep(0)
        return '아스파탐'

    result = run(OcrSearchPipeline(matcher, ocr).run(b'img'))
    assert result.status == STATUS_COMPLETED
    assert [a.id for a in result.additives] == ['aspartame']


def test_ocr_receives_image_bytes(matcher):
    seen = []

    def ocr(image):
        seen.append(image)
        return '구연산'

    run(OcrSearchPipeline(matcher, ocr).run(b'raw-bytes'))
    assert seen == [b'raw-bytes']


def test_unusable_text(matcher):
    result = run(OcrSearchPipeline(matcher, lambda image: ' 1 ').run(b'img'))
    assert result.status == STATUS_NO_TEXT
    assert result.additives == []


def test_ocr_returns_none(matcher):
    result = run(OcrSearchPipeline(matcher, lambda image: None).run(b'img'))
    assert result.status == STATUS_NO_TEXT
    assert result.extracted_text == ''


def test_ocr_failure(matcher):
    def ocr(image):
        raise RuntimeError('engine crashed')

    result = run(OcrSearchPipeline(matcher, ocr).run(b'img'))
    assert result.status == STATUS_FAILED
    assert result.additives == []
    assert 'engine crashed' in result.error


def test_slow_ocr_times_out(matcher):
    async def ocr(image):
        await asyncio.sleep(1)
        return LABEL

    started = time.perf_counter()
    result = run(OcrSearchPipeline(matcher, ocr, timeout=0.05).run(b'img'))
    assert result.status == STATUS_TIMEOUT
    assert result.additives == []
    assert time.perf_counter() - started < 0.9


def test_slow_catalog_times_out():
    matcher = AdditiveMatcher(CatalogCache.from_store(FakeStore(delay=1)))
    result = run(OcrSearchPipeline(matcher, lambda image: LABEL, timeout=0.05).run(b'img'))
    assert result.status == STATUS_TIMEOUT
    assert result.extracted_text == LABEL


def test_search_with_deadline(matcher):
    assert [a.id for a in run(search_with_deadline(matcher, '구연산'))] == ['citric-acid']

    slow = AdditiveMatcher(CatalogCache.from_store(FakeStore(delay=1)))
    assert run(search_with_deadline(slow, '구연산', timeout=0.05)) == []


def test_to_dict(matcher):
    result = run(OcrSearchPipeline(matcher, lambda image: '구연산').run(b'img'))
    payload = result.to_dict()
    assert payload['status'] == 'completed'
    assert payload['extractedText'] == '구연산'
    assert payload['additives'][0]['matchType'] == 'exact'
    assert payload['elapsedMs'] >= 0
    assert payload['error'] is None

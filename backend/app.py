import os
import asyncio
import logging
from flask import Flask, jsonify
from flask_cors import CORS

from additive_search.catalog import CatalogCache, SqliteAdditiveStore, init_additives_table
from additive_search.config import CatalogConfig, SearchConfig
from additive_search.match import AdditiveMatcher
from additive_search.pipeline import DEFAULT_TIMEOUT, OcrSearchPipeline
from routes.search import search_bp

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, 'data')
CATALOG_DB_PATH = os.environ.get('CATALOG_DB_PATH', os.path.join(DATA_DIR, 'additives.db'))


def create_app(config=None, ocr=None, catalog=None):
    """
    Build the search API. `ocr` is an optional callable (image bytes → text)
    enabling /api/search/image; `catalog` injects a ready CatalogCache.
    """
    app = Flask(__name__)
    CORS(app)  # mobile client and admin web run on other origins

    app.config.update(
        CATALOG_DB_PATH=CATALOG_DB_PATH,
        SEARCH_TIMEOUT=float(os.environ.get('SEARCH_TIMEOUT', DEFAULT_TIMEOUT)),
        WARM_CATALOG=True,
    )
    if config:
        app.config.update(config)

    if catalog is None:
        db_path = app.config['CATALOG_DB_PATH']
        os.makedirs(os.path.dirname(db_path) or '.', exist_ok=True)
        init_additives_table(db_path)
        catalog = CatalogCache.from_store(SqliteAdditiveStore(db_path),
                                          config=CatalogConfig.from_env())

    matcher = AdditiveMatcher(catalog, app.config.get('SEARCH_CONFIG') or SearchConfig.from_env())
    app.config['CATALOG_CACHE'] = catalog
    app.config['ADDITIVE_MATCHER'] = matcher
    app.config['OCR_PIPELINE'] = (
        OcrSearchPipeline(matcher, ocr, timeout=app.config['SEARCH_TIMEOUT']) if ocr else None
    )

    # Load the catalog before serving so request threads only read the snapshot
    if app.config['WARM_CATALOG']:
        entries = asyncio.run(catalog.get_catalog())
        logger.info(f"Catalog warmed at startup: {len(entries)} entries ({catalog.state.value})")

    app.register_blueprint(search_bp)

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'ok', 'catalog': catalog.status()['state']})

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    create_app().run(debug=True, port=5000)

"""
search.py — Flask Blueprint for additive search.
Routes: text search, image (OCR) search, additive lookup, catalog status/refresh.
"""

import asyncio
import base64
import binascii
import logging
from flask import Blueprint, request, jsonify, current_app

from additive_search.pipeline import search_with_deadline

logger = logging.getLogger(__name__)

search_bp = Blueprint('search', __name__)

MAX_TEXT_LENGTH = 200_000


def _error(message: str, status: int):
    return jsonify({'success': False, 'error': message}), status


@search_bp.route('/api/search/text', methods=['POST'])
def search_by_text():
    """
    Search additives in free text (typed query or OCR output).
    Body: { text: str }
    Returns: { success: true, data: { additives: [...] } }
    """
    data = request.get_json(silent=True) or {}
    text = data.get('text')
    if not isinstance(text, str) or not text.strip():
        return _error('Text is required', 400)
    if len(text) > MAX_TEXT_LENGTH:
        return _error(f'Text exceeds {MAX_TEXT_LENGTH} characters', 400)

    matcher = current_app.config['ADDITIVE_MATCHER']
    timeout = current_app.config['SEARCH_TIMEOUT']
    additives = asyncio.run(search_with_deadline(matcher, text, timeout))
    logger.info(f"Text search: {len(additives)} additives for {len(text)} chars")

    return jsonify({'success': True, 'data': {'additives': [a.to_api() for a in additives]}})


def _read_image() -> bytes | None:
    """Image bytes from a multipart 'image' file or JSON { imageBase64 }."""
    if 'image' in request.files:
        return request.files['image'].read() or None
    data = request.get_json(silent=True) or {}
    encoded = data.get('imageBase64')
    if not isinstance(encoded, str) or not encoded:
        return None
    if ',' in encoded and encoded.startswith('data:'):
        encoded = encoded.split(',', 1)[1]
    try:
        return base64.b64decode(encoded, validate=True) or None
    except (binascii.Error, ValueError):
        return None


@search_bp.route('/api/search/image', methods=['POST'])
def search_by_image():
    """
    OCR an ingredient label image and search the extracted text.
    Returns: { success: true, data: { status, extractedText, additives, elapsedMs } }
    """
    pipeline = current_app.config.get('OCR_PIPELINE')
    if pipeline is None:
        return _error('OCR engine is not configured', 503)

    image = _read_image()
    if image is None:
        return _error('A valid image is required', 400)

    try:
        result = asyncio.run(pipeline.run(image))
        return jsonify({'success': True, 'data': result.to_dict()})
    except Exception as e:
        logger.exception("Image search error")
        return _error(str(e), 500)


@search_bp.route('/api/additives/<additive_id>')
def get_additive(additive_id):
    """Look up one additive in the loaded catalog snapshot."""
    entry = current_app.config['CATALOG_CACHE'].get_entry(additive_id)
    if entry is None:
        return _error(f'Additive {additive_id} not found', 404)
    return jsonify({'success': True, 'data': entry.model_dump(mode='json')})


@search_bp.route('/api/catalog/status')
def catalog_status():
    return jsonify(current_app.config['CATALOG_CACHE'].status())


@search_bp.route('/api/catalog/refresh', methods=['POST'])
def catalog_refresh():
    """Invalidate the cached catalog and reload it from the store."""
    cache = current_app.config['CATALOG_CACHE']
    try:
        entries = asyncio.run(cache.refresh())
    except Exception as e:
        logger.exception("Catalog refresh error")
        return _error(str(e), 500)
    logger.info(f"Catalog refreshed on request: {len(entries)} entries")
    return jsonify(cache.status())

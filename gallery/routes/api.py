"""API routes for the gallery front end."""
import logging
import os
from pathlib import Path

from flask import Blueprint, jsonify, current_app, request

from gallery.lib.capabilities import WEBP_DECODE
from gallery.lib.manifest import ManifestBuilder
from gallery.lib.sources import resolve_source

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')


@api_bp.route('/images', methods=['GET'])
def list_images():
    """Get the ordered image manifest.

    Built fresh from the filesystem on every call. Always returns the same
    payload shape; a degraded manifest (e.g. unreadable directory) comes back
    with an empty list and a 500 status so operators can spot it.
    """
    manifest = ManifestBuilder.from_config(current_app.config).build()
    payload = manifest.to_dict()

    if manifest.degraded:
        return jsonify(payload), 500
    return jsonify(payload)


@api_bp.route('/images/<path:filename>/source', methods=['GET'])
def image_source(filename):
    """Resolve the best file to fetch for one original image.

    Prefers the WebP sibling when the client's Accept header allows it.
    """
    accepts_webp = 'image/webp' in request.headers.get('Accept', '')

    resolved = resolve_source(
        current_app.config['IMAGES_DIR'],
        filename,
        accepts_webp=accepts_webp,
        alternate_name=current_app.config.get('ALTERNATE_DIR_NAME', 'webp'),
    )
    if resolved is None:
        logger.debug(f"No servable image for {filename!r}")
        return jsonify({'error': 'Image not found'}), 404

    return jsonify(resolved.to_dict())


@api_bp.route('/health', methods=['GET'])
def health():
    """Report whether the image directory is where the config says.

    Returns 503 when the directory is missing or cannot be listed.
    """
    images_dir = Path(current_app.config['IMAGES_DIR'])
    payload = {
        'status': 'ok',
        'images_dir': str(images_dir),
        'images_dir_exists': images_dir.is_dir(),
        'webp_decode': WEBP_DECODE.get(),
    }

    error = None
    if not payload['images_dir_exists']:
        error = 'Image directory not found'
    else:
        try:
            with os.scandir(images_dir):
                pass
        except OSError as e:
            error = f'Image directory unreadable: {e.strerror or e}'

    if error:
        logger.warning(f"Health check failed for {images_dir}: {error}")
        payload['status'] = 'error'
        payload['error'] = error
        return jsonify(payload), 503
    return jsonify(payload)

"""Flask application factory module.

Provides create_app() factory function. The gallery service has no database:
the photo directory on disk is the only source of truth, so the factory only
loads configuration and registers the API blueprint.
"""
import logging

from flask import Flask

logger = logging.getLogger(__name__)


def create_app(config_name='development', overrides=None):
    """Application factory function.

    Args:
        config_name: Configuration environment ('development', 'production'
            or 'testing')
        overrides: Optional mapping applied on top of the configuration class
            (tests use this to point IMAGES_DIR at a temporary directory)

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    # Load configuration
    from config import config as config_dict
    config_class = config_dict.get(config_name, config_dict['default'])
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    # Validate timezone configuration
    config_class.validate_timezone(app.config['TIMEZONE'])

    # Keep payload keys in their documented order
    app.json.sort_keys = False

    logging.getLogger('gallery').setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    from gallery.routes import api_bp
    app.register_blueprint(api_bp)

    logger.debug(f"Gallery app created ({config_name}), images dir: {app.config['IMAGES_DIR']}")
    return app

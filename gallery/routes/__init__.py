"""Flask routes package."""
from gallery.routes.api import api_bp

__all__ = ['api_bp']

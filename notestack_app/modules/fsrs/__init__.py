from flask import Blueprint

fsrs_bp = Blueprint('fsrs', __name__)

module_metadata = {
    'name': 'FSRS Review Engine',
    'icon': 'brain',
    'category': 'Core',
    'url_prefix': '/api/cards',
    'enabled': True
}

def setup_module(app):
    """Initialize the FSRS module."""
    from notestack_app.core.extensions import csrf_protect
    from . import models
    # Import api to ensure routes are registered to fsrs_bp
    from .routes import api

    # JSON API authenticated by session; clients post without form tokens
    csrf_protect.exempt(fsrs_bp)

# File: notestack_app/modules/content/__init__.py
from flask import Blueprint

content_bp = Blueprint('content', __name__)

module_metadata = {
    'name': 'Content Units',
    'icon': 'note-sticky',
    'category': 'Core',
    'url_prefix': '/content',
    'enabled': True
}

def setup_module(app):
    """Register content models before tables are created."""
    from . import models

# File: notestack_app/modules/stats/__init__.py
# Purpose: Blueprint for review statistics.

from flask import Blueprint

stats_bp = Blueprint('stats', __name__)

module_metadata = {
    'name': 'Review Statistics',
    'icon': 'chart-line',
    'category': 'Core',
    'url_prefix': '/api/stats',
    'enabled': True
}

def setup_module(app):
    # Import routes so they are registered with the Blueprint
    from .routes import api

# File: notestack_app/modules/auth/__init__.py
from flask import Blueprint

auth_bp = Blueprint('auth', __name__)

module_metadata = {
    'name': 'Authentication',
    'icon': 'lock',
    'category': 'System',
    'url_prefix': '/auth',
    'enabled': True
}

def setup_module(app):
    from notestack_app.core.extensions import csrf_protect
    from . import models
    from .routes import api

    csrf_protect.exempt(auth_bp)

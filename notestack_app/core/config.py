# File: notestack_app/core/config.py
# Core Infrastructure Layer

import os
from dotenv import load_dotenv

load_dotenv()

# Project root: this file lives in notestack_app/core/
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))

DATABASE_PATH = os.path.join(BASE_DIR, "database", "notestack.db")

class Config:
    """Notestack application configuration."""

    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        # Fallback for development, though env is preferred
        SECRET_KEY = 'dev-secret-key-replace-in-production'

    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI') or f'sqlite:///{DATABASE_PATH}'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'connect_args': {'timeout': 30},
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR') or os.path.join(BASE_DIR, 'logs')
    LOG_JSON = os.environ.get('LOG_JSON', '').lower() in ('1', 'true', 'yes')

    @classmethod
    def init_app(cls, app):
        """Create the directories the app writes into."""
        if app.config['SQLALCHEMY_DATABASE_URI'] == f'sqlite:///{DATABASE_PATH}':
            os.makedirs(os.path.dirname(DATABASE_PATH), exist_ok=True)

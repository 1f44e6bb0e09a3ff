# File: notestack_app/core/extensions.py
# Infrastructure Layer: Flask Extensions initialization

import sqlite3
from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_wtf import CSRFProtect
from sqlalchemy import event
from sqlalchemy.engine import Engine

# 1. Database Initialization
db = SQLAlchemy()

@event.listens_for(Engine, "connect")
def _set_sqlite_pragmas(dbapi_connection, _connection_record):
    """Enable WAL mode, foreign keys and extend the busy timeout for SQLite connections."""
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA busy_timeout=30000;")
        cursor.execute("PRAGMA foreign_keys=ON;")
    finally:
        cursor.close()

# 2. Login Management
login_manager = LoginManager()
login_manager.login_message = "Please sign in to access this page."
login_manager.login_message_category = "info"


@login_manager.unauthorized_handler
def _unauthorized():
    return jsonify({
        'success': False,
        'message': 'Not authenticated',
        'code': 'UNAUTHENTICATED',
    }), 401

# 3. Security
csrf_protect = CSRFProtect()

__all__ = ["db", "login_manager", "csrf_protect"]

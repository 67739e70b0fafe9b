"""
Shared pytest fixtures for the finance tracker tests.
"""

import pytest
import os
import sys
from unittest.mock import MagicMock

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))


class TestConfig:
    """Test configuration that bypasses MySQL and the hosted auth services."""
    SECRET_KEY = 'test-secret-key-for-testing-only'
    TESTING = True
    WTF_CSRF_ENABLED = True
    SERVER_NAME = 'localhost'
    LOG_LEVEL = 'WARNING'
    SUPABASE_URL = 'https://auth.example.test'
    SUPABASE_ANON_KEY = 'anon-key'
    FIREBASE_API_KEY = 'firebase-key'
    AUTH_TIMEOUT = 5
    UPLOAD_FOLDER = '/tmp/test_uploads'
    AVATAR_FOLDER = '/tmp/test_uploads/avatars'
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    @staticmethod
    def init_db(app):
        """Mock DB initialization - no real MySQL needed."""
        app.db_pool = MagicMock()


PASSWORD_USER = {
    'id': 'user-1',
    'email': 'test@example.com',
    'email_confirmed_at': '2024-01-01T00:00:00Z',
    'created_at': '2024-01-01T00:00:00Z',
    'user_metadata': {'phone': '+254700000001', 'display_name': 'Test User'},
}

PHONE_USER = {
    'uid': 'fb-uid-1',
    'phone_number': '+254700000001',
    'email': None,
    'display_name': None,
    'photo_url': None,
}


def make_mock_connection():
    """Create a mock MySQL connection with cursor context manager."""
    conn = MagicMock()
    cursor = MagicMock()
    cursor.__enter__ = MagicMock(return_value=cursor)
    cursor.__exit__ = MagicMock(return_value=False)
    conn.cursor.return_value = cursor
    return conn, cursor


def login_session(client, password_user=None, phone_user=None):
    """Put an identity in the session. Defaults to a full email account."""
    if password_user is None and phone_user is None:
        password_user = PASSWORD_USER
    with client.session_transaction() as sess:
        if password_user:
            sess['password_user'] = {**password_user,
                                     'user_metadata': dict(password_user['user_metadata'])}
            sess['password_tokens'] = {'access_token': 'access-1', 'refresh_token': 'refresh-1'}
        if phone_user:
            sess['phone_user'] = dict(phone_user)


def executed_sql(cursor):
    """All SQL strings passed to cursor.execute, in order."""
    return [c.args[0] for c in cursor.execute.call_args_list]


@pytest.fixture
def app():
    """Create application for testing."""
    from app import create_app
    application = create_app(config_class=TestConfig)
    application.config['WTF_CSRF_ENABLED'] = True
    yield application


@pytest.fixture
def app_no_csrf():
    """Create application for testing without CSRF protection."""
    from app import create_app
    application = create_app(config_class=TestConfig)
    application.config['WTF_CSRF_ENABLED'] = False
    yield application


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def client_no_csrf(app_no_csrf):
    """Create test client without CSRF."""
    return app_no_csrf.test_client()


@pytest.fixture
def logged_in_client(client_no_csrf):
    """Client with a full-account session."""
    login_session(client_no_csrf)
    return client_no_csrf


@pytest.fixture
def mock_db(app_no_csrf):
    """Provide mock database connection and cursor."""
    conn, cursor = make_mock_connection()
    app_no_csrf.db_pool.get_connection.return_value = conn
    return conn, cursor

"""
Shared Test Fixtures for the BlogSpace API

This module provides the fixtures used across all test modules: a Flask app
over an in-memory SQLite database, its test client, a mocked media store so
no test talks to Cloudinary, and factories for signed-up users and posts.
"""

import pytest
from unittest.mock import MagicMock
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from auth import revoked_tokens
from media import media_store
from models import db


def words(count, word='word'):
    """Body text of exactly count whitespace-separated words."""
    return ' '.join([word] * count)


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app():
    """
    Flask application built from TestingConfig.

    Each test gets a fresh in-memory database and an empty revocation store.
    Media cleanup runs inline so its effects can be asserted immediately.

    No application context is held open while the test runs, so every
    test-client request gets its own context (and its own ``g``) just as a
    served request would. Tests that touch the database directly wrap that
    access in ``with app.app_context():``.
    """
    app = create_app('testing')
    revoked_tokens.clear()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()

    revoked_tokens.clear()


@pytest.fixture
def client(app):
    return app.test_client()


# =============================================================================
# Media Store Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def mock_media(monkeypatch):
    """
    Replace the Cloudinary-backed media store methods with mocks.

    Usage:
        def test_delete(mock_media):
            ...
            mock_media.delete.assert_called_once_with('blogss/images/abc')

    Returns:
        MagicMock: Namespace with ``store`` and ``delete`` mocks.
    """
    mock = MagicMock()

    def fake_store(file, folder, kind='image'):
        return {
            "type": kind,
            "url": f"https://res.cloudinary.com/test/{folder}/{file.filename}",
            "public_id": f"blogss/{folder}/{os.path.splitext(file.filename)[0]}",
            "format": os.path.splitext(file.filename)[1].lstrip('.'),
            "size": 1024,
            "width": 640,
            "height": 480
        }

    mock.store.side_effect = fake_store
    mock.delete.return_value = {"result": "ok"}

    monkeypatch.setattr(media_store, 'store', mock.store)
    monkeypatch.setattr(media_store, 'delete', mock.delete)
    return mock


# =============================================================================
# Data Factories
# =============================================================================

@pytest.fixture
def make_user(client):
    """
    Factory that signs a user up through the API.

    Returns:
        callable: make_user(username, **fields) -> dict with ``user_id``,
        ``token``, ``headers`` and ``user``.
    """
    def _make_user(username='alice', password='secret123', **fields):
        payload = {
            "username": username,
            "email": fields.pop('email', f"{username}@example.com"),
            "password": password,
            "full_name": fields.pop('full_name', f"{username.title()} Tester"),
            **fields
        }
        response = client.post('/api/v1/users/signup', json=payload)
        assert response.status_code == 201, response.get_json()
        data = response.get_json()['data']
        return {
            "user_id": data['user']['user_id'],
            "token": data['token'],
            "headers": {"Authorization": f"Bearer {data['token']}"},
            "user": data['user']
        }

    return _make_user


@pytest.fixture
def make_post(client):
    """
    Factory that creates a post through the API as the given user.

    Returns:
        callable: make_post(author, **overrides) -> serialized post dict.
    """
    def _make_post(author, **overrides):
        payload = {
            "title": "A post about testing",
            "content": words(50),
            "excerpt": "A short excerpt for the post",
            "category": "Technology",
            "tags": ["python", "flask"],
            "status": "published",
            **overrides
        }
        response = client.post('/api/v1/blogs', json=payload, headers=author['headers'])
        assert response.status_code == 201, response.get_json()
        return response.get_json()['data']['blog']

    return _make_post


@pytest.fixture
def alice(make_user):
    return make_user('alice')


@pytest.fixture
def bob(make_user):
    return make_user('bob')

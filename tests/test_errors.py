"""
Tests for the error envelope, service endpoints and configuration.
"""

import logging
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from config import ProductionConfig, TestingConfig, _env_flag
from errors import (
    AuthorizationError,
    BlogSpaceError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from logger import ColourFormatter, setup_logging
from models import db


@pytest.fixture
def failing_route(app):
    @app.route('/boom')
    def boom():
        raise RuntimeError("kaboom")

    return '/boom'


class TestErrorEnvelope:
    """Tests for the JSON error responses."""

    def test_unknown_route(self, client):
        response = client.get('/api/v1/nothing-here')

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "error": "API endpoint not found"}

    def test_method_not_allowed(self, client):
        response = client.patch('/api/v1/users/login')

        assert response.status_code == 405
        assert response.get_json()['success'] is False

    def test_validation_errors_list_fields(self, client):
        response = client.post('/api/v1/users/login', json={"email": "nope"})

        assert response.status_code == 400
        body = response.get_json()
        assert body['error'] == 'Validation Error'
        fields = {e['field'] for e in body['errors']}
        assert {'email', 'password'} <= fields

    def test_non_object_json_body(self, client):
        response = client.post('/api/v1/users/login', json=["a", "b"])

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Request body must be a JSON object'

    def test_unexpected_error_shows_details_outside_production(self, client, failing_route):
        response = client.get(failing_route)

        assert response.status_code == 500
        body = response.get_json()
        assert body['error'] == 'Internal Server Error'
        assert body['details'] == 'kaboom'
        assert 'RuntimeError' in body['traceback']

    def test_unexpected_error_hides_details_in_production(self, app, client, failing_route):
        app.config['ENV_NAME'] = 'production'

        response = client.get(failing_route)

        assert response.status_code == 500
        assert response.get_json() == {"success": False, "error": "Internal Server Error"}

    def test_payload_too_large(self, app, client, alice):
        app.config['MAX_CONTENT_LENGTH'] = 1024

        response = client.post('/api/v1/blogs', data="x" * 4096,
                               headers={**alice['headers'], "Content-Type": "application/json"})

        assert response.status_code == 413
        assert response.get_json()['error'] == 'File size limit has been reached'


class TestExceptionClasses:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize("cls,status", [
        (ValidationError, 400),
        (ConflictError, 400),
        (AuthorizationError, 403),
        (NotFoundError, 404),
        (BlogSpaceError, 500),
    ])
    def test_status_codes(self, cls, status):
        assert cls.status_code == status

    def test_default_and_custom_messages(self):
        assert NotFoundError().message == 'Not found'
        error = NotFoundError('Blog not found')
        assert error.message == 'Blog not found'
        assert str(error) == 'Blog not found'


class TestServiceEndpoints:
    """Tests for / and /api."""

    def test_health(self, client):
        response = client.get('/')

        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'ok'
        assert body['database'] == 'connected'
        assert body['uptime'] >= 0

    def test_api_index(self, client):
        body = client.get('/api').get_json()

        assert body['success'] is True
        assert body['endpoints']['blogs'] == '/api/v1/blogs'


class TestConfig:
    """Tests for configuration classes and helpers."""

    def test_testing_config(self, app):
        assert app.config['TESTING'] is True
        assert app.config['MEDIA_CLEANUP_ASYNC'] is False
        assert app.config['SQLALCHEMY_DATABASE_URI'] == 'sqlite://'

    def test_production_config(self):
        assert ProductionConfig.ENV_NAME == 'production'
        assert ProductionConfig.DEBUG is False
        assert TestingConfig.ENV_NAME == 'testing'

    @pytest.mark.parametrize("raw,expected", [
        ("1", True), ("true", True), ("Yes", True), ("on", True),
        ("0", False), ("false", False), ("", False),
    ])
    def test_env_flag(self, monkeypatch, raw, expected):
        monkeypatch.setenv('BLOGSPACE_TEST_FLAG', raw)
        assert _env_flag('BLOGSPACE_TEST_FLAG', not expected) is expected

    def test_env_flag_default(self, monkeypatch):
        monkeypatch.delenv('BLOGSPACE_TEST_FLAG', raising=False)
        assert _env_flag('BLOGSPACE_TEST_FLAG', True) is True

    def test_create_app_builds_tables(self):
        app = create_app('testing')
        with app.app_context():
            tables = set(db.metadata.tables)
        assert {'Users', 'Posts', 'PostTags', 'Comments', 'Likes', 'Followers'} <= tables


class TestLogging:
    """Tests for the console log formatter."""

    def make_record(self, level):
        return logging.LogRecord('posts', level, __file__, 1, 'Post %s created', (7,), None)

    def test_colours_by_level(self):
        formatter = ColourFormatter()

        warning = formatter.format(self.make_record(logging.WARNING))
        error = formatter.format(self.make_record(logging.ERROR))

        assert warning.startswith("\x1b[33;20m[WARNING]")
        assert error.startswith("\x1b[31;20m[ERROR]")
        assert 'posts - Post 7 created' in warning
        assert warning.endswith("\x1b[0m")

    def test_plain_output(self):
        line = ColourFormatter(use_colour=False).format(self.make_record(logging.INFO))

        assert line.startswith('[INFO]')
        assert '\x1b' not in line

    def test_setup_installs_one_handler(self):
        root = setup_logging('INFO')
        setup_logging('INFO')

        handlers = [h for h in root.handlers if isinstance(h.formatter, ColourFormatter)]
        assert len(handlers) == 1

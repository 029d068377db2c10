# Configuration settings
import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env'))


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///blogspace.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'dev-jwt-secret-change-me')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)

    BCRYPT_LOG_ROUNDS = 12

    CLOUDINARY_CLOUD_NAME = os.getenv('CLOUDINARY_CLOUD_NAME', '')
    CLOUDINARY_API_KEY = os.getenv('CLOUDINARY_API_KEY', '')
    CLOUDINARY_API_SECRET = os.getenv('CLOUDINARY_API_SECRET', '')
    MEDIA_ROOT_FOLDER = os.getenv('MEDIA_ROOT_FOLDER', 'blogss')

    # Best-effort removal of replaced or orphaned media assets
    MEDIA_CLEANUP_ASYNC = _env_flag('MEDIA_CLEANUP_ASYNC', True)
    MEDIA_CLEANUP_WORKERS = int(os.getenv('MEDIA_CLEANUP_WORKERS', '2'))
    MEDIA_CLEANUP_RETRIES = int(os.getenv('MEDIA_CLEANUP_RETRIES', '0'))
    MEDIA_CLEANUP_BACKOFF = float(os.getenv('MEDIA_CLEANUP_BACKOFF', '1.0'))

    # Upload middleware ceiling; per-kind limits are enforced in media.py
    MAX_CONTENT_LENGTH = 20 * 1024 * 1024

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    DEBUG = True
    ENV_NAME = 'development'


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    ENV_NAME = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    JWT_SECRET_KEY = 'testing-jwt-secret-key-with-enough-length'
    BCRYPT_LOG_ROUNDS = 4
    MEDIA_CLEANUP_ASYNC = False
    MEDIA_CLEANUP_BACKOFF = 0.0
    LOG_LEVEL = 'WARNING'


class ProductionConfig(Config):
    DEBUG = False
    ENV_NAME = 'production'


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}

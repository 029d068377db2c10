# Main Flask app
import logging
import os
import time

from flask import Flask, g, request

from auth import bcrypt, jwt
from config import config
from errors import register_error_handlers
from logger import setup_logging
from media import media_cleaner, media_store
from models import db
from routes import blogs_bp, main_bp, media_bp, users_bp

logger = logging.getLogger(__name__)


def register_request_logging(app):
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.pop('request_started', None)
        elapsed = (time.perf_counter() - started) * 1000 if started else 0.0
        logger.info(f"{request.method} {request.full_path.rstrip('?')} "
                    f"{response.status_code} {elapsed:.1f}ms")
        return response


def create_app(config_name='default'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    setup_logging(app.config['LOG_LEVEL'])

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    jwt.init_app(app)
    media_store.init_app(app)
    media_cleaner.init_app(app)

    register_error_handlers(app)
    register_request_logging(app)

    # Register blueprints
    app.register_blueprint(main_bp, url_prefix='/')
    app.register_blueprint(users_bp, url_prefix='/api/v1/users')
    app.register_blueprint(blogs_bp, url_prefix='/api/v1/blogs')
    app.register_blueprint(media_bp, url_prefix='/api/v1/media')

    with app.app_context():
        db.create_all()

    logger.info(f"BlogSpace API ready ({config_name} configuration)")
    return app


if __name__ == '__main__':
    application = create_app(os.getenv('FLASK_CONFIG', 'default'))
    application.run(port=int(os.getenv('PORT', '5001')))

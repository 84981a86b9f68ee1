import logging

from flask import Flask, jsonify
from flask_cors import CORS
import redis
from werkzeug.exceptions import HTTPException

from config import Config
from errors import ApiError
from extensions import db, Database

import routes

LOG_FORMAT = "[%(asctime)s] %(lineno)d %(name)s - %(levelname)s - %(message)s"


def configure_logging(level_name):
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def connect_redis(redis_url, logger):
    try:
        r = redis.from_url(redis_url, decode_responses=True)
        r.ping()  # Check connection
        logger.info("Successfully connected to Redis.")
    except (redis.exceptions.ConnectionError, TypeError, ValueError) as e:
        logger.warning("Could not connect to Redis: %s", e)
        r = None
    return r


def register_error_handlers(app, database):
    def _rollback():
        if database.available:
            db.session.rollback()

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        _rollback()
        return error.to_response()

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        code = 'NOT_FOUND' if error.code == 404 else error.name.upper().replace(' ', '_')
        return jsonify({'error': error.description, 'code': code}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        _rollback()
        app.logger.exception("Unhandled error: %s", error)
        return jsonify({'error': 'Internal server error', 'code': 'INTERNAL_ERROR'}), 500


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config.get('LOG_LEVEL', 'INFO'))
    CORS(app, origins=app.config.get('CORS_ORIGINS', '*'))

    # Initialize the database with the app (disabled when DATABASE_URL is unusable)
    database = Database()
    database.init_app(app)

    # Connect to Redis; live interview sessions are unavailable without it
    r = connect_redis(app.config.get('REDIS_URL'), app.logger)

    # Initialize routes
    routes.init_app(app, r)
    register_error_handlers(app, database)

    # Create database tables if they don't exist
    if database.available:
        with app.app_context():
            db.create_all()

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(port=5001, debug=True)

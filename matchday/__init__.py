import logging
import os

import redis
from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
cache = Cache()
migrate = Migrate()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


# Use Redis in production for shared rate limiting across multiple workers
limiter_storage_uri = "memory://"
redis_url = os.environ.get("REDIS_URL") or os.environ.get("RATELIMIT_STORAGE_URI")
if redis_url:
    try:
        redis.Redis.from_url(redis_url).ping()
        limiter_storage_uri = redis_url
        logger.info(f"Rate limiter using Redis storage at {redis_url}")
    except redis.exceptions.ConnectionError as e:
        logger.warning(f"Redis not available for rate limiter, using memory storage: {e}")

limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
    storage_uri=limiter_storage_uri,
)


def create_app(config_name=None):
    app = Flask(__name__)

    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Identity comes from the gateway headers on every request
    from matchday.services.identity import load_identity_from_request

    login_manager.request_loader(load_identity_from_request)

    @login_manager.unauthorized_handler
    def unauthorized():
        return (
            jsonify(
                {
                    "success": False,
                    "error": "unauthenticated",
                    "message": "User not authenticated",
                }
            ),
            401,
        )

    # Import and register blueprints
    from matchday.routes.main import bp as main_bp

    app.register_blueprint(main_bp)

    from matchday.routes.player import bp as player_bp

    app.register_blueprint(player_bp, url_prefix="/api/player")

    from matchday.routes.admin import bp as admin_bp

    app.register_blueprint(admin_bp, url_prefix="/api/admin")

    register_error_handlers(app)
    register_request_hooks(app)

    from matchday.utils.logging_config import setup_logging

    setup_logging(app)

    show_config_warnings(app, config_name)

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            enable_sqlite_savepoints(db.engine)
        db.create_all()

    return app


def enable_sqlite_savepoints(engine):
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on pysqlite"""

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def show_config_warnings(app, config_name):
    """Log configuration warnings and status"""
    logger.info(f"Matchday starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    if not os.environ.get("SECRET_KEY") and not app.config.get("TESTING"):
        logger.warning(
            "Using auto-generated SECRET_KEY (sessions will reset on restart). "
            "Run: python3 generate_secrets.py"
        )

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        logger.info(
            "Using SQLite database ("
            + ("in-memory" if "memory" in db_url else "app.db file")
            + ")"
        )
    elif "postgresql" in db_url:
        logger.info("Using PostgreSQL database")
    else:
        logger.info(
            f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )

    logger.info(
        f"Outcome scoring policy: {app.config.get('OUTCOME_SCORING_POLICY', 'flat')}"
    )


def register_request_hooks(app):
    from matchday.utils.logging_config import log_request_info
    from matchday.utils.performance import (
        log_request_performance,
        track_request_performance,
    )

    @app.before_request
    def before_request():
        track_request_performance()
        log_request_info()

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return log_request_performance(response)


def register_error_handlers(app):
    """Register global error handlers (all JSON)"""
    from matchday.errors import PredictionError

    @app.errorhandler(PredictionError)
    def handle_prediction_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{error.kind}: {error.message}")
        else:
            app.logger.info(
                f"{error.kind} on {request.method} {request.path}: {error.message}"
            )
        return jsonify(error.to_dict()), error.status_code

    def _error(kind, message, status):
        return (
            jsonify({"success": False, "error": kind, "message": message}),
            status,
        )

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return _error("bad_request", "Bad request", 400)

    @app.errorhandler(403)
    def forbidden_error(error):
        return _error("forbidden", "Access forbidden", 403)

    @app.errorhandler(404)
    def not_found_error(error):
        return _error("not_found", "Resource not found", 404)

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return _error("method_not_allowed", "Method not allowed", 405)

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return _error("rate_limited", "Too many requests", 429)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return _error("internal", "Internal server error", 500)


from matchday import models  # noqa: F401, E402 - imported for model registration

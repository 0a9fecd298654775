"""
Application factory for the Dog Trainers Directory API.

This module provides a function to create and configure the Flask
application. All extensions (SQLAlchemy, Migrate, JWT, Limiter) are initialised
here. Blueprints for the public search surface, the reference data
listings, the trainer portal and the admin back office are registered
inside the factory to allow for modular development and unit testing.

Environment variables control the database connection, the secret key
and a few tunables for search and featured placements. A default
configuration is provided for development, using SQLite when no
database URL is available.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta

from flask import Flask
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# instantiate extensions without binding them to an app yet.  They will
# be bound in create_app().
from .db import db  # use shared db object from db.py
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


def create_app(test_config: dict | None = None) -> Flask:
    """Create and configure a Flask application.

    Parameters
    ----------
    test_config: dict | None, optional
        Optional configuration overrides used when running tests.

    Returns
    -------
    Flask
        A configured Flask application instance.
    """
    app = Flask(__name__)

    # Default configuration. Override using environment variables or
    # by passing a ``test_config`` mapping.
    app.config.update(
        SQLALCHEMY_DATABASE_URI=os.environ.get("DATABASE_URL", "sqlite:///trainer_directory.db"),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        JWT_SECRET_KEY=os.environ.get("JWT_SECRET_KEY", "please-change-this-secret-key"),
        JWT_ACCESS_TOKEN_EXPIRES=timedelta(days=1),
        SEARCH_DEFAULT_LIMIT=int(os.environ.get("SEARCH_DEFAULT_LIMIT", "20")),
        SEARCH_MAX_LIMIT=int(os.environ.get("SEARCH_MAX_LIMIT", "100")),
        FEATURED_DURATION_DAYS=int(os.environ.get("FEATURED_DURATION_DAYS", "30")),
        FEATURED_CAP_PER_COUNCIL=int(os.environ.get("FEATURED_CAP_PER_COUNCIL", "5")),
        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO"),
        RATELIMIT_STORAGE_URI=os.environ.get("RATELIMIT_STORAGE_URI", "memory://"),
        RATELIMIT_HEADERS_ENABLED=True,
        PUBLIC_SEARCH_RATE_LIMIT=os.environ.get("PUBLIC_SEARCH_RATE_LIMIT", "100/minute"),
    )

    if test_config:
        app.config.update(test_config)

    logging.getLogger(__name__).setLevel(app.config["LOG_LEVEL"])

    # Initialise extensions with the app
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Register custom error handlers
    from .errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints. Importing here avoids circular imports.
    from .routes.search import search_bp
    from .routes.reference import reference_bp
    from .routes.trainer import trainer_bp
    from .routes.admin import admin_bp

    app.register_blueprint(search_bp, url_prefix="/api")
    app.register_blueprint(reference_bp, url_prefix="/api")
    app.register_blueprint(trainer_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/api")

    # Provide a simple health check route
    @app.route("/api/health")
    def health_check() -> dict[str, str]:
        """Return a simple health check response.

        This endpoint can be used by deployment platforms to verify
        that the application has started correctly.
        """
        return {"status": "ok"}

    return app

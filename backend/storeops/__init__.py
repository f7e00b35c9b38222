# backend/storeops/__init__.py
from zoneinfo import ZoneInfoNotFoundError

from flask import Flask

from .config import Config
from .extensions import db, migrate, ENTITY_STORE_EXTENSION
from .time_utils import business_timezone


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Fail at startup, not on the first aggregation request
    try:
        business_timezone(app.config.get("BUSINESS_TIMEZONE"))
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(
            f"Invalid BUSINESS_TIMEZONE: {app.config.get('BUSINESS_TIMEZONE')!r}"
        ) from exc

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.entity_store import build_entity_store
    app.extensions[ENTITY_STORE_EXTENSION] = build_entity_store(app.config)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.revenue import revenue_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(revenue_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

# Overview: Flask extension instances for the local database, migrations and the entity store.

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

ENTITY_STORE_EXTENSION = "storeops.entity_store"


def get_entity_store():
    """Entity store bound to the current app (see create_app)."""
    return current_app.extensions[ENTITY_STORE_EXTENSION]

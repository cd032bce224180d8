from __future__ import annotations

from flask import Flask

from .config import Config
from .extensions import db, migrate
from .db_utils import ensure_database_schema


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)

    register_extensions(app)
    register_blueprints(app)

    with app.app_context():
        ensure_database_schema()

    return app


def register_extensions(app: Flask) -> None:
    db.init_app(app)
    migrate.init_app(app, db)


def register_blueprints(app: Flask) -> None:
    from .projects import bp as projects_bp

    app.register_blueprint(projects_bp)

# backend/glassworks/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate



def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)

    # Service loggers live under the "glassworks" namespace
    logging.getLogger("glassworks").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.pricing import pricing_bp
    from .routes.quotes import quotes_bp
    from .routes.orders import orders_bp
    from .routes.invoices import invoices_bp
    from .routes.catalog import catalog_bp
    from .routes.sequences import sequences_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(pricing_bp)
    app.register_blueprint(quotes_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(sequences_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

"""
FORST Reporting Service
Flask Application Factory.

Usage:
    from forst import create_app
    app = create_app()           # APP_ENV, else "development"
    app = create_app("testing")
"""

import logging
import os
from datetime import date

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import event
from sqlalchemy.engine import Engine

from forst.config import config
from forst.middleware.diagnostics import run_startup_diagnostics
from forst.middleware.logging_config import configure_logging
from forst.middleware.rate_limiter import init_rate_limits
from forst.middleware.timing import init_request_timing
from forst.models import db

logger = logging.getLogger(__name__)

migrate = Migrate()
# limits are attached per blueprint in init_rate_limits()
limiter = Limiter(key_func=get_remote_address, default_limits=[])


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_conn, _record):
    """SQLite ignores FOREIGN KEY clauses unless asked per connection."""
    if type(dbapi_conn).__module__.startswith("sqlite3"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _ensure_sqlite_dir(app: Flask) -> None:
    uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if uri.startswith("sqlite:///") and ":memory:" not in uri:
        directory = os.path.dirname(uri[len("sqlite:///"):])
        if directory:
            os.makedirs(directory, exist_ok=True)


def _init_extensions(app: Flask) -> None:
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    origins = app.config.get("CORS_ORIGINS") or "*"
    if origins == "*":
        CORS(app)
    else:
        CORS(app, origins=[o.strip() for o in origins.split(",") if o.strip()])


def _create_tables(app: Flask) -> None:
    from forst.models import sales  # noqa: F401  (registers the tables)

    with app.app_context():
        try:
            db.create_all()
        except Exception as exc:
            app.logger.warning("db.create_all() failed: %s", exc)


def _register_blueprints(app: Flask) -> None:
    from forst.blueprints.forst_bp import forst_bp
    from forst.blueprints.health_bp import health_bp
    from forst.blueprints.master_data_bp import master_data_bp
    from forst.blueprints.metrics_bp import metrics_bp

    for blueprint in (forst_bp, master_data_bp, health_bp, metrics_bp):
        app.register_blueprint(blueprint)

    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "FORST Reporting Service"}


def _register_cli(app: Flask) -> None:
    @app.cli.command("seed-forst-demo")
    @click.option("--year", type=int, default=None, help="Report year to seed (default: current year).")
    def seed_forst_demo(year):
        """Seed demo zones, people, offers and yearly targets for the FORST reports."""
        from forst.services.demo_seed import seed_demo_data

        year = year or date.today().year
        created = seed_demo_data(year)
        db.session.commit()
        click.echo(
            f"Seeded FORST demo data for {year}: "
            f"{created['zones']} zones, {created['users']} users, "
            f"{created['offers']} offers, {created['targets']} targets."
        )


def _register_error_handlers(app: Flask) -> None:
    def _is_api():
        return request.path.startswith("/api/")

    @app.errorhandler(404)
    def not_found(_e):
        if _is_api():
            return {"error": "Not found", "path": request.path}, 404
        return "<h1>404 Not Found</h1>", 404

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("Unhandled error on %s: %s", request.path, e, exc_info=True)
        if _is_api():
            return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500
        return "<h1>500 Internal Server Error</h1>", 500


def create_app(config_name=None):
    """
    Build the FORST application.

    Args:
        config_name: "development", "testing" or "production".
                     Defaults to the APP_ENV env var, else "development".
                     ProductionConfig raises RuntimeError when its
                     required environment variables are missing.
    """
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    configure_logging(app)
    _ensure_sqlite_dir(app)
    _init_extensions(app)
    init_request_timing(app)
    _create_tables(app)
    _register_blueprints(app)
    _register_cli(app)
    _register_error_handlers(app)

    run_startup_diagnostics(app)
    # needs the registered blueprints
    init_rate_limits(app, limiter)
    return app

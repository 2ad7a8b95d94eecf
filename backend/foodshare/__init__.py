import logging
import os
from flask import Flask, send_from_directory, abort
from .config import get_config
from .extensions import db, migrate, cors
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from dotenv import load_dotenv
from werkzeug.middleware.proxy_fix import ProxyFix

logger = logging.getLogger(__name__)


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        root.addHandler(handler)
    logging.getLogger("foodshare").setLevel(level)
    app.logger.setLevel(level)


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    app = Flask(__name__)

    # Ensure .env is loaded before reading env vars
    load_dotenv()
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    _configure_logging(app)

    # Honor proxy headers from Nginx for correct url_for(_external=True) scheme/host
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=1)  # type: ignore[assignment]

    # Init extensions
    cors.init_app(app)
    db.init_app(app)
    migrate.init_app(app, db)

    # Models must be imported before create_all / migrations see the metadata
    from . import models  # noqa: F401
    from .errors import register_error_handlers
    from .services import init_services

    register_error_handlers(app)
    init_services(app, db.session)

    # Register blueprints (v1 API)
    from .apis.v1 import register_api
    register_api(app)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/db-check")
    def db_check():
        try:
            db.session.execute(text("SELECT 1"))
            return {"db": "ok"}
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning("Database check failed: %s", e)
            return {"db": "error", "message": str(e)}, 500

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    @app.get("/uploads/<path:filename>")
    def uploads(filename: str):
        """Serve locally stored post images (S3 deployments never hit this)."""
        base = app.config["UPLOAD_FOLDER"]
        if not os.path.isfile(os.path.join(base, filename)):
            abort(404)
        return send_from_directory(base, filename)

    logger.debug("Application created with %s config", config_name or os.getenv("FLASK_ENV", "development"))
    return app

import os

import click
import sentry_sdk
from flask import Flask, jsonify, request, g
from sqlalchemy import text
from werkzeug.exceptions import HTTPException

from naijaauto.celery_app import create_celery_app
from naijaauto.config import Settings, _env_int
from naijaauto.extensions import db, cors
from naijaauto.integrations.common import IntegrationError
from naijaauto.segments.common import MARKETPLACE_EXTENSION_KEY, current_actor
from naijaauto.segments.segment_listings import listings_bp
from naijaauto.segments.segment_moderation import moderation_bp
from naijaauto.segments.segment_payments import payments_bp
from naijaauto.segments.segment_phone_auth import phone_auth_bp
from naijaauto.segments.segment_seller import seller_bp
from naijaauto.services.errors import ApiError
from naijaauto.services.marketplace import MarketplaceService, build_marketplace_service
from naijaauto.store.memory import InMemoryRepository
from naijaauto.store.repository import Repository
from naijaauto.store.seed import seed_marketplace
from naijaauto.store.sql import SqlRepository
from naijaauto.utils.observability import init_sentry, install_request_observers


def _error_payload(payload: dict) -> dict:
    rid = (getattr(g, "request_id", "") or "").strip()
    if rid:
        payload["trace_id"] = rid
    return payload


def _configure_database(app: Flask, settings: Settings) -> None:
    instance_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "instance"))
    database_url = settings.database_url
    if not database_url:
        os.makedirs(instance_dir, exist_ok=True)
        database_url = f"sqlite:///{os.path.join(instance_dir, 'naijaauto.db').replace(os.sep, '/')}"
    app.config["SQLALCHEMY_DATABASE_URI"] = database_url
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    engine_options = {
        "pool_pre_ping": True,
        "pool_recycle": _env_int("DB_POOL_RECYCLE_SECONDS", 1800, minimum=60, maximum=86400),
    }
    if not database_url.startswith("sqlite://"):
        engine_options.update(
            {
                "pool_size": _env_int("DB_POOL_SIZE", 10, minimum=1, maximum=200),
                "max_overflow": _env_int("DB_MAX_OVERFLOW", 20, minimum=0, maximum=500),
                "pool_timeout": _env_int("DB_POOL_TIMEOUT_SECONDS", 30, minimum=1, maximum=300),
            }
        )
        app.logger.info(
            "db_pooling_enabled pool_size=%s max_overflow=%s",
            engine_options["pool_size"],
            engine_options["max_overflow"],
        )
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options


def create_app(*, settings: Settings | None = None, repository: Repository | None = None, marketplace: MarketplaceService | None = None):
    app = Flask(__name__)
    settings = settings or Settings.from_env()
    init_sentry(app, environment=settings.env)
    settings.validate_for_production()

    app.config["SECRET_KEY"] = settings.secret_key
    app.config["NAIJAAUTO_SETTINGS"] = settings
    _configure_database(app, settings)

    # CORS configuration
    if settings.is_production:
        origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    else:
        origins = ["*"] if not settings.cors_origins else [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    cors.init_app(app, resources={r"/api/*": {"origins": origins}})

    db.init_app(app)
    install_request_observers(app)

    if marketplace is None:
        if repository is None:
            repository = InMemoryRepository() if settings.store_backend == "memory" else SqlRepository()
        marketplace = build_marketplace_service(settings, repository)
    app.extensions[MARKETPLACE_EXTENSION_KEY] = marketplace
    if settings.email_queue_enabled:
        app.extensions["celery"] = create_celery_app(app)

    with app.app_context():
        if isinstance(marketplace.repo, SqlRepository):
            db.create_all()
        if settings.seed_on_startup:
            seed_marketplace(marketplace.repo)
    app.logger.info("naijaauto_boot env=%s store=%s", settings.env, marketplace.repo.name)

    @app.errorhandler(ApiError)
    def _api_error(error: ApiError):
        if error.status >= 500:
            app.logger.error("api_error code=%s path=%s", error.code, request.path)
        return jsonify(_error_payload(error.to_payload())), int(error.status)

    @app.errorhandler(IntegrationError)
    def _integration_error(error: IntegrationError):
        app.logger.warning("integration_failed path=%s err=%s", request.path, error)
        payload = {"ok": False, "error": "UPSTREAM_FAILURE", "message": "An upstream provider failed.", "status": 502}
        return jsonify(_error_payload(payload)), 502

    @app.errorhandler(HTTPException)
    def _api_http_exception(error: HTTPException):
        # Keep API failures JSON-only for predictable frontend handling.
        if not request.path.startswith("/api/"):
            return error
        payload = {
            "ok": False,
            "error": error.name,
            "message": error.description or error.name,
            "status": int(error.code or 500),
        }
        return jsonify(_error_payload(payload)), int(error.code or 500)

    @app.errorhandler(Exception)
    def _api_unhandled_exception(error: Exception):
        app.logger.exception("unhandled_exception path=%s", request.path)
        payload = {
            "ok": False,
            "error": "InternalServerError",
            "message": "Internal server error",
            "status": 500,
        }
        return jsonify(_error_payload(payload)), 500

    @app.before_request
    def _capture_auth_context():
        actor = current_actor()
        if actor is None:
            sentry_sdk.set_user(None)
            return
        sentry_sdk.set_user({"id": actor.id})
        sentry_sdk.set_tag("auth_role", actor.role)

    @app.teardown_request
    def _cleanup_db_session(exc):
        try:
            if exc is not None:
                db.session.rollback()
        finally:
            db.session.remove()

    app.register_blueprint(listings_bp)
    app.register_blueprint(phone_auth_bp)
    app.register_blueprint(seller_bp)
    app.register_blueprint(moderation_bp)
    app.register_blueprint(payments_bp)

    @app.get("/api/health")
    def health():
        db_state = "skipped"
        if isinstance(app.extensions[MARKETPLACE_EXTENSION_KEY].repo, SqlRepository):
            db_state = "ok"
            try:
                with db.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
            except Exception as e:
                app.logger.warning("health_db_failed err=%s", e)
                db_state = "fail"
        return jsonify({
            "ok": True,
            "service": "naijaauto-backend",
            "env": settings.env,
            "store": app.extensions[MARKETPLACE_EXTENSION_KEY].repo.name,
            "db": db_state,
        })

    @app.cli.command("seed")
    def seed_command():
        """Insert launch locations and featured packages if missing."""
        result = seed_marketplace(app.extensions[MARKETPLACE_EXTENSION_KEY].repo)
        click.echo(f"seed_ok locations_added={result['locations_added']} packages_added={result['packages_added']}")

    return app

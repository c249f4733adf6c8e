import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import Config
from .exceptions import AppError
from .jobs import SweepJobs, build_scheduler
from .models import db
from .services import BookingService, BroadcastChannel, NotificationService

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(name)s] %(levelname)s: %(message)s"


def _configure_logging(level: str) -> None:
    pkg_logger = logging.getLogger(__name__)
    if not pkg_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        pkg_logger.addHandler(handler)
    pkg_logger.setLevel(level)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        if err.status_code >= 500:
            logger.error("request failed: %s", err.message)
        return jsonify({"error": err.message}), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        return jsonify({"error": err.description or err.name}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        logger.exception("unhandled error")
        return jsonify({"error": "Internal server error"}), 500


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    _configure_logging(app.config["LOG_LEVEL"])
    db.init_app(app)

    # ---- Shared services, one set per app ----
    channel = BroadcastChannel()
    notifications = NotificationService(channel, list_limit=app.config["NOTIFICATION_LIST_LIMIT"])
    sweeps = SweepJobs(notifications)
    app.extensions["backoffice"] = {
        "channel": channel,
        "notifications": notifications,
        "bookings": BookingService(notifications),
        "sweeps": sweeps,
        "scheduler": None,
    }

    from .controllers.auth import bp as auth_bp
    from .controllers.bookings import bp as bookings_bp
    from .controllers.fleet import bp as fleet_bp
    from .controllers.maintenance import bp as maintenance_bp
    from .controllers.notifications import bp as notifications_bp
    from .controllers.reports import bp as reports_bp
    from .controllers.transactions import bp as transactions_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(bookings_bp)
    app.register_blueprint(fleet_bp)
    app.register_blueprint(maintenance_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(transactions_bp)
    _register_error_handlers(app)

    @app.get("/api/health")
    def health():
        return jsonify({"status": "ok"})

    with app.app_context():
        db.create_all()

    if app.config["SCHEDULER_ENABLED"] and not app.testing:
        scheduler = build_scheduler(app, sweeps)
        scheduler.start()
        app.extensions["backoffice"]["scheduler"] = scheduler

    logger.info(
        "backoffice started (tz=%s, scheduler=%s)",
        app.config["TIMEZONE"], "on" if app.extensions["backoffice"]["scheduler"] else "off",
    )
    return app

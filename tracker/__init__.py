from flask import Flask, jsonify

from .errors import FatalConfigurationError, NotFoundError, ValidationError
from .extensions import db, migrate, rq


def create_app(config_object='config.Config'):
    """App factory.

    Owns the in-process pieces that must not be module globals: the
    subscription registry, the cohort calendar, the offer listeners and the
    background check monitor.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)
    migrate.init_app(app, db)
    rq.init_app(app)

    from . import models  # noqa: F401  register tables
    from .services.cohort_dates import CohortCalendar
    from .services.monitor import BackgroundCheckMonitor
    from .services.offers import OfferListenerRegistry
    from .services.store import Subscriptions

    app.extensions["tracker.subscriptions"] = Subscriptions()
    calendar_file = app.config.get("COHORT_CALENDAR_FILE")
    app.extensions["tracker.cohort_calendar"] = (
        CohortCalendar.from_file(calendar_file) if calendar_file else CohortCalendar())
    app.extensions["tracker.offer_listeners"] = OfferListenerRegistry()
    monitor = BackgroundCheckMonitor(app, interval=app.config.get("BACKGROUND_CHECK_INTERVAL_SEC", 300))
    app.extensions["tracker.background_check_monitor"] = monitor

    from .api.candidates import bp as candidates_bp
    from .api.interviews import bp as interviews_bp
    from .api.background_checks import bp as background_checks_bp
    from .api.offers import bp as offers_bp
    from .api.cohorts import bp as cohorts_bp
    from .api.notifications import bp as notifications_bp
    for bp in (candidates_bp, interviews_bp, background_checks_bp, offers_bp, cohorts_bp, notifications_bp):
        app.register_blueprint(bp)

    @app.errorhandler(ValidationError)
    def _validation_error(e):
        return jsonify(e.to_dict()), 400

    @app.errorhandler(NotFoundError)
    def _not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(FatalConfigurationError)
    def _fatal_config(e):
        app.logger.error('Configuration error: %s', e)
        return jsonify({"error": str(e)}), 500

    @app.get('/health')
    def health():
        return jsonify({"status": "ok", "monitor_running": monitor.running})

    if app.config.get("BACKGROUND_CHECK_MONITOR_ENABLED"):
        monitor.start()

    return app

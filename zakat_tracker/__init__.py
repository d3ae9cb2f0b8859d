"""Flask application factory for the Zakat tracker."""
import logging
import os
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


logger = logging.getLogger('zakat_tracker')


def create_app(config: dict | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Optional configuration dictionary to override defaults.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Trust X-Forwarded-For from reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    app.config.update(
        SECRET_KEY=os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production'),
        JSON_SORT_KEYS=False,
        DATA_DIR=os.environ.get('DATA_DIR', os.path.join(os.path.dirname(__file__), '..', 'data')),
    )

    if config:
        app.config.update(config)

    from zakat_tracker import db
    db.init_app(app)

    from zakat_tracker import cli
    cli.register_cli(app)

    from zakat_tracker.routes.health import health_bp
    from zakat_tracker.routes.api import api_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(api_bp, url_prefix='/api/v1')

    # In-process daily job for single-container deployments
    from zakat_tracker.services.config import is_background_job_enabled
    if is_background_job_enabled():
        from zakat_tracker.services.background_jobs import start_background_jobs
        start_background_jobs(app)
        logger.info("Daily job scheduled in background thread")

    return app

"""Flask application factory for the Zakat engine."""
import logging

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


logger = logging.getLogger('zakat_engine')


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

    # Default configuration, engine defaults from the environment
    from zakat_engine.services.config import get_engine_config
    app.config.update(JSON_SORT_KEYS=False)
    app.config.update(get_engine_config())

    # Override with provided config
    if config:
        app.config.update(config)

    # Register CLI commands
    from zakat_engine import cli
    cli.register_cli(app)

    # Register blueprints
    from zakat_engine.routes.health import health_bp
    from zakat_engine.routes.api import api_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(api_bp, url_prefix='/api/v1')

    logger.debug(
        f"App created (currency={app.config['ZAKAT_DEFAULT_CURRENCY']}, "
        f"policy={app.config['ZAKAT_ELIGIBILITY_POLICY']})"
    )
    return app

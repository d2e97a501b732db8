"""Flask application factory."""
import logging
import re

from flask import Flask, jsonify, make_response
from typing import Optional, Dict, Any


def _container_settings(app_config) -> Dict[str, Any]:
    """Map Flask config keys to dependency-injector configuration."""
    return {
        "stripe_webhook_secret": app_config.get("STRIPE_WEBHOOK_SECRET"),
        "stripe_signature_tolerance": app_config.get("STRIPE_SIGNATURE_TOLERANCE"),
        "paid_overrides_terminal": app_config.get("PAID_OVERRIDES_TERMINAL", True),
        "resend_api_key": app_config.get("RESEND_API_KEY"),
        "resend_api_url": app_config.get("RESEND_API_URL"),
        "email_from": app_config.get("EMAIL_FROM"),
        "notification_timeout": app_config.get("NOTIFICATION_TIMEOUT_SECONDS"),
        "order_currency": app_config.get("ORDER_CURRENCY"),
    }


def create_app(
    config: Optional[Dict[str, Any]] = None, env: Optional[str] = None
) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Optional configuration dictionary applied on top of the
            environment's configuration class.
        env: Environment name (development, testing, production). Defaults
            to FLASK_ENV.

    Returns:
        Configured Flask application instance.

    Raises:
        ValueError: If configuration is invalid.
        EmailConfigError: If email delivery settings are inconsistent.
    """
    app = Flask(__name__)

    # Load configuration
    from src.config import get_config
    app.config.from_object(get_config(env)())
    if config:
        app.config.update(config)

    from src.utils.startup_check import validate_timeouts
    validate_timeouts(app.config)

    log_level = app.config.get("LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("src").setLevel(log_level)

    # Initialize extensions
    from src.extensions import db, limiter
    db.init_app(app)
    limiter.init_app(app)

    # Initialize DI container
    from src.container import Container
    container = Container()
    container.config.from_dict(_container_settings(app.config))

    # Build the email service now so invalid email settings fail at startup
    container.email_service()

    # The session is overridden per-request via before_request hook
    app.container = container

    @app.before_request
    def inject_db_session():
        """Inject db session into container for each request."""
        container.db_session.override(db.session)

    # Register blueprints
    from src.routes.webhooks import webhooks_bp
    app.register_blueprint(webhooks_bp)

    # Health check endpoint
    @app.route("/api/v1/health")
    def health():
        """Health check endpoint."""
        return jsonify({
            "status": "ok",
            "service": "storefront-payments",
            "version": "0.1.0"
        }), 200

    # Root endpoint
    @app.route("/")
    def root():
        """Root endpoint."""
        return jsonify({
            "message": "Storefront payment webhooks",
            "version": "0.1.0",
            "health": "/api/v1/health",
            "webhook": "/webhook"
        }), 200

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 errors."""
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        return jsonify({"error": "Internal server error"}), 500

    @app.errorhandler(429)
    def ratelimit_handler(error):
        """Handle rate limit exceeded errors with JSON response."""
        response = make_response(jsonify({
            "error": "Rate limit exceeded",
            "message": str(error.description)
        }), 429)
        # Derive Retry-After from the limit description when possible
        match = re.search(r'(\d+)\s*(second|minute|hour)', str(error.description).lower())
        if match:
            value = int(match.group(1))
            unit = match.group(2)
            multiplier = {"second": 1, "minute": 60, "hour": 3600}[unit]
            response.headers['Retry-After'] = str(value * multiplier)
        else:
            response.headers['Retry-After'] = '60'
        return response

    return app

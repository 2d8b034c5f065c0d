"""Flask application factory."""
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from quoteflow.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            profiles_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Flask-Mail for quote notifications
    from quoteflow.services.email_service import init_mail
    init_mail(app)

    # Prometheus metrics instrumentation
    from quoteflow.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    from quoteflow.middleware import load_user

    @app.before_request
    def before_request_handler():
        """Load user context for each request."""
        load_user()

    # Error Handlers
    from quoteflow.exceptions import QuoteflowError

    @app.errorhandler(QuoteflowError)
    def handle_quoteflow_error(error):
        """Handle custom application exceptions."""
        app.logger.error(f"QuoteflowError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'success': False, 'error': error.description, 'status': 'error'}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception on {request.method} {request.path}: {error}")
        return jsonify({'success': False, 'error': 'Erreur interne du serveur', 'status': 'error'}), 500

    # Register blueprints
    from quoteflow.blueprints.quotes import quotes_bp
    from quoteflow.blueprints.quote_drafts import quote_drafts_bp
    from quoteflow.blueprints.invoices import invoices_bp
    from quoteflow.blueprints.public import public_bp
    from quoteflow.blueprints.metrics import metrics_bp

    app.register_blueprint(quotes_bp)
    app.register_blueprint(quote_drafts_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(public_bp)
    app.register_blueprint(metrics_bp)

    # CLI commands (cron sweep, schema)
    from quoteflow.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"MAIL_SERVER={app.config.get('MAIL_SERVER')}")
    app.logger.info(f"FOLLOWUPS_SCHEDULER_URL={app.config.get('FOLLOWUPS_SCHEDULER_URL')}")

    return app

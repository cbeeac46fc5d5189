import logging
from flask import Flask, request, jsonify
from flask_cors import CORS

from healthbuddy.config import load_config
from healthbuddy.data_access import DataAccess
from healthbuddy.errors import HealthBuddyError, ValidationError

__version__ = '1.0.0'

logger = logging.getLogger(__name__)


def create_app(config=None, data_access=None):
    """
    Build the HealthBuddy API server.

    The server persists through a DataAccess of its own; by default one is
    built from ``config``. It cannot itself run on the remote ``api``
    backend.
    """
    app = Flask(__name__)

    config = config or load_config()
    if data_access is None:
        if config.storage == 'api':
            raise RuntimeError(
                'The API server needs a local store. '
                'Set HEALTHBUDDY_STORAGE to sql, mongo or keyvalue.'
            )
        data_access = DataAccess(config)

    # Request size limit (1 MB)
    app.config['MAX_CONTENT_LENGTH'] = 1 * 1024 * 1024

    from healthbuddy.utils.audit_logger import configure_logging
    configure_logging(config.log_level, config.audit_log_file)

    # CORS: restrict origins
    if config.allowed_origins:
        origins_list = list(config.allowed_origins)
    elif config.is_production:
        raise RuntimeError(
            'ALLOWED_ORIGINS environment variable is required in production'
        )
    else:
        # Development: allow localhost variants
        origins_list = [
            'http://localhost:*',
            'http://127.0.0.1:*',
        ]

    CORS(app, resources={r"/api/*": {"origins": origins_list}})

    app.extensions['healthbuddy'] = data_access

    # Security headers
    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate'
        response.headers['Referrer-Policy'] = 'no-referrer'
        if config.is_production or request.is_secure:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    # Bodies sent with POST/PUT must be JSON
    @app.before_request
    def validate_content_type():
        if request.method in ('POST', 'PUT') and request.content_length:
            content_type = request.content_type or ''
            if 'application/json' not in content_type:
                return jsonify({'error': 'Content-Type must be application/json'}), 415

    @app.errorhandler(HealthBuddyError)
    def handle_domain_error(exc):
        if isinstance(exc, ValidationError):
            return jsonify({'error': exc.errors}), exc.status_code
        return jsonify({'error': exc.message}), exc.status_code

    @app.errorhandler(500)
    def handle_internal_error(exc):
        original = getattr(exc, 'original_exception', None) or exc
        logger.error('Unhandled error: %s', original, exc_info=original)
        return jsonify({'error': 'Internal server error'}), 500

    from healthbuddy.routes import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    @app.cli.command('init-storage')
    def init_storage():
        """Create tables / indexes for the configured store."""
        data_access.initialize()
        print(f'Storage ready ({data_access.backend.name} backend).')

    return app

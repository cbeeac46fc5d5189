"""
HealthBuddy API server entry point.

    python run.py                      # development server
    flask --app run init-storage       # create tables / indexes only
"""
import os
import sys
from healthbuddy import create_app
from healthbuddy.errors import BackendUnavailable

app = create_app()


def _ssl_context(is_production: bool):
    cert_path = os.getenv('SSL_CERT_PATH')
    key_path = os.getenv('SSL_KEY_PATH')
    if cert_path and key_path and os.path.exists(cert_path) and os.path.exists(key_path):
        return cert_path, key_path
    if is_production:
        raise RuntimeError('Set SSL_CERT_PATH and SSL_KEY_PATH to serve in production.')
    return None


if __name__ == '__main__':
    is_production = os.getenv('FLASK_ENV') == 'production'

    try:
        app.extensions['healthbuddy'].initialize()
    except BackendUnavailable as exc:
        print(f'Failed to start server: {exc}', file=sys.stderr)
        sys.exit(1)

    app.run(
        host=os.getenv('FLASK_HOST', '0.0.0.0'),
        port=int(os.getenv('FLASK_PORT', os.getenv('PORT', 5000))),
        debug=not is_production,
        ssl_context=_ssl_context(is_production),
    )

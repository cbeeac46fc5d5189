"""
HealthBuddy REST API routes.
"""
import logging
from flask import Blueprint, current_app, request, jsonify

from healthbuddy.models import utc_timestamp

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def get_data_access():
    """The DataAccess owned by the running app."""
    return current_app.extensions['healthbuddy']


def json_body() -> dict:
    """Parsed JSON object body, or an empty dict when absent or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@api_bp.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok', 'timestamp': utc_timestamp()}), 200


# Import submodules to register routes on api_bp
from . import users         # noqa: E402, F401
from . import sessions      # noqa: E402, F401
from . import readings      # noqa: E402, F401

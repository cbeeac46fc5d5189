"""Device session routes: at most one session is active at a time."""
from flask import jsonify

from healthbuddy.errors import NotFound
from healthbuddy.utils.audit_logger import audit_log
from . import api_bp, get_data_access, json_body


@api_bp.route('/sessions', methods=['POST'])
def create_session():
    """Deactivate any active session and start one for userId."""
    data = json_body()
    user_id = data.get('userId')
    if not user_id:
        return jsonify({'error': 'userId required'}), 400

    try:
        session = get_data_access().create_session(str(user_id))
    except NotFound:
        return jsonify({'error': 'User not found'}), 404

    audit_log('CREATE', 'session', resource_id=session.id, user_id=session.user_id)

    return jsonify({'sessionId': session.id, 'createdAt': session.created_at}), 200


@api_bp.route('/sessions/active', methods=['GET'])
def get_active_session():
    user = get_data_access().get_active_session()
    if user is None:
        return jsonify({'error': 'No active session'}), 404
    return jsonify(user.to_dict()), 200


@api_bp.route('/sessions/clear', methods=['POST'])
def clear_session():
    get_data_access().clear_session()
    audit_log('LOGOUT', 'session', details={'action': 'session_cleared'})
    return jsonify({'success': True}), 200

"""Blood pressure reading routes."""
from flask import jsonify

from healthbuddy.errors import NotFound
from healthbuddy.utils.audit_logger import audit_log
from healthbuddy.utils.validators import validate_reading
from . import api_bp, get_data_access, json_body


@api_bp.route('/blood-pressure', methods=['POST'])
def create_reading():
    """Store a reading; the timestamp is assigned server-side."""
    data = json_body()
    user_id = data.get('userId')
    if not user_id:
        return jsonify({'error': 'Missing required fields'}), 400

    errors = validate_reading(data)
    if errors:
        return jsonify({'error': errors}), 400

    try:
        reading = get_data_access().add_reading(
            str(user_id),
            int(data['systolic']),
            int(data['diastolic']),
            int(data['heartRate']),
        )
    except NotFound:
        return jsonify({'error': 'User not found'}), 404

    audit_log('CREATE', 'reading', resource_id=reading.id, user_id=reading.user_id)

    return jsonify(reading.to_dict()), 200


@api_bp.route('/blood-pressure/<user_id>', methods=['GET'])
def get_readings(user_id):
    """Return the user's readings, newest first."""
    readings = get_data_access().get_readings(user_id)

    audit_log('READ', 'reading', resource_id=user_id,
              details={'count': len(readings)}, user_id=user_id)

    return jsonify([r.to_dict() for r in readings]), 200


@api_bp.route('/blood-pressure/<reading_id>', methods=['DELETE'])
def delete_reading(reading_id):
    try:
        get_data_access().delete_reading(reading_id)
    except NotFound:
        return jsonify({'error': 'Reading not found'}), 404

    audit_log('DELETE', 'reading', resource_id=reading_id)

    return jsonify({'success': True}), 200

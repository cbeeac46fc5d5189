"""User registration, login and profile routes."""
from flask import jsonify

from healthbuddy.errors import NotFound, UserExists
from healthbuddy.utils.audit_logger import audit_log
from healthbuddy.utils.validators import (
    clean_profile_update, validate_profile_update, validate_registration,
)
from . import api_bp, get_data_access, json_body


@api_bp.route('/users/register', methods=['POST'])
def register():
    """Register a new user. Does not start a session."""
    data = json_body()
    if not data.get('name') or not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Missing required fields'}), 400

    errors = validate_registration(data)
    if errors:
        return jsonify({'error': errors}), 400

    try:
        user = get_data_access().create_user(
            data['name'].strip(), data['email'].strip(), data['password'])
    except UserExists:
        return jsonify({'error': 'User already exists'}), 400

    audit_log('CREATE', 'user', resource_id=user.id,
              details={'action': 'registration'}, user_id=user.id)

    return jsonify(user.to_dict()), 200


@api_bp.route('/users/login', methods=['POST'])
def login():
    """Check credentials and return the user. Sessions are created separately."""
    data = json_body()
    email = data.get('email')
    password = data.get('password')
    if not email or not password:
        return jsonify({'error': 'Missing credentials'}), 400

    user = get_data_access().find_user_by_credentials(str(email).strip(), str(password))
    if user is None:
        audit_log('LOGIN_FAILED', 'user', details={'reason': 'invalid_credentials'})
        return jsonify({'error': 'Invalid credentials'}), 401

    audit_log('LOGIN', 'user', resource_id=user.id,
              details={'action': 'login'}, user_id=user.id)

    return jsonify(user.to_dict()), 200


@api_bp.route('/users/<user_id>', methods=['GET'])
def get_user(user_id):
    try:
        user = get_data_access().find_user_by_id(user_id)
    except NotFound:
        user = None
    if user is None:
        return jsonify({'error': 'User not found'}), 404

    audit_log('READ', 'user', resource_id=user.id, user_id=user.id)

    return jsonify(user.to_dict()), 200


@api_bp.route('/users/<user_id>/profile', methods=['PUT'])
def update_profile(user_id):
    """Update height, weight, age, blood group and allergies."""
    data = json_body()

    errors = validate_profile_update(data)
    if errors:
        return jsonify({'error': errors}), 400

    profile = clean_profile_update(data)
    try:
        user = get_data_access().update_user_profile(user_id, profile)
    except NotFound:
        return jsonify({'error': 'User not found'}), 404

    audit_log('UPDATE', 'user', resource_id=user.id,
              details={'action': 'profile_update', 'fields_changed': sorted(profile)},
              user_id=user.id)

    return jsonify(user.to_dict()), 200

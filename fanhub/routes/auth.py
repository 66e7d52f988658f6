"""
Authentication Routes

FLOW OVERVIEW
- /auth/register [POST]
  • Validate email/username/password → create user → return bearer token.
- /auth/login [POST]
  • Check credentials and account status → update last_login → return bearer token.
- /auth/me [GET]
  • Current user's private profile (coins, tier).
- /auth/forgot-password [POST]
  • Always 200; creates and mails a reset token when the account exists.
- /auth/reset-password [POST]
  • Valid unused token → new password hash → token marked used.
"""

import logging

from flask import Blueprint, g, jsonify

from ..models import db, User
from ..utils.api_utils import rate_limited, request_validator
from ..utils.auth_utils import (
    authenticate_user, create_password_reset_token, create_user, generate_jwt_token,
    get_user_by_reset_token, hash_password, login_required, send_password_reset_email,
)
from ..utils.errors import APIError
from ..utils.validators import validate_email, validate_password_strength, validate_username

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


@auth_bp.route('/register', methods=['POST'])
@rate_limited('auth')
def register():
    """User registration endpoint"""
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['email', 'username', 'password'])
    request_validator.require_strings(data, ['email', 'username', 'password', 'full_name'])

    email_result = validate_email(data['email'])
    if not email_result.is_valid:
        raise APIError(email_result.error_message, 400, 'INVALID_EMAIL')

    username_result = validate_username(data['username'])
    if not username_result.is_valid:
        raise APIError(username_result.error_message, 400, 'INVALID_USERNAME')

    password_result = validate_password_strength(data['password'])
    if not password_result.is_valid:
        raise APIError(password_result.error_message, 400, 'WEAK_PASSWORD')

    if User.query.filter_by(email=email_result.sanitized_value).first():
        raise APIError('User with this email already exists', 409, 'EMAIL_TAKEN')
    if User.query.filter_by(username=username_result.sanitized_value).first():
        raise APIError('Username is already taken', 409, 'USERNAME_TAKEN')

    user = create_user(
        email_result.sanitized_value,
        data['password'],
        username_result.sanitized_value,
        full_name=(data.get('full_name') or '').strip() or None,
    )

    return jsonify({
        'success': True,
        'message': 'Registration successful',
        'user': user.to_dict(include_private=True),
        'access_token': generate_jwt_token(user),
    }), 201


@auth_bp.route('/login', methods=['POST'])
@rate_limited('auth')
def login():
    """User login endpoint"""
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['email', 'password'])
    request_validator.require_strings(data, ['email', 'password'])

    user = authenticate_user(data['email'], data['password'])
    if user is None:
        logger.warning(f"Failed login for {data['email']}")
        raise APIError('Invalid email or password', 401, 'INVALID_CREDENTIALS')

    if not user.is_active():
        raise APIError('Account is suspended', 403, 'ACCOUNT_SUSPENDED')

    user.update_last_login()
    return jsonify({
        'success': True,
        'user': user.to_dict(include_private=True),
        'access_token': generate_jwt_token(user),
    })


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'success': True, 'user': g.current_user.to_dict(include_private=True)})


@auth_bp.route('/forgot-password', methods=['POST'])
@rate_limited('auth')
def forgot_password():
    """Request a password reset email"""
    data = request_validator.get_json_object()
    request_validator.require_strings(data, ['email'])
    email = (data.get('email') or '').strip().lower()

    user = User.query.filter_by(email=email).first() if email else None
    if user is not None:
        reset_token = create_password_reset_token(user)
        send_password_reset_email(user, reset_token)

    # Same answer either way so account existence is not revealed
    return jsonify({
        'success': True,
        'message': 'If an account exists for that email, a reset link has been sent.',
    })


@auth_bp.route('/reset-password', methods=['POST'])
@rate_limited('auth')
def reset_password():
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['token', 'password'])
    request_validator.require_strings(data, ['token', 'password'])

    reset_token, user = get_user_by_reset_token(data['token'])
    if reset_token is None or user is None:
        raise APIError('Invalid or expired reset token', 400, 'INVALID_TOKEN')

    password_result = validate_password_strength(data['password'])
    if not password_result.is_valid:
        raise APIError(password_result.error_message, 400, 'WEAK_PASSWORD')

    user.password_hash = hash_password(data['password'])
    reset_token.mark_used()
    db.session.commit()
    logger.info(f"Password reset for user {user.user_id}")

    return jsonify({'success': True, 'message': 'Password has been reset'})

"""
Authentication Utilities

FLOW OVERVIEW
- hash_password / verify_password: bcrypt.
- generate_jwt_token / verify_jwt_token: HS256 bearer tokens signed with JWT_SECRET_KEY.
- login_required / admin_required: decorators that resolve the bearer token into g.current_user.
- create_user / authenticate_user: account creation and credential checks.
- Password reset: token lookup and Flask-Mail delivery.
"""

import logging
from datetime import datetime, timedelta
from functools import wraps

import bcrypt
import jwt
from flask import current_app, g, request
from flask_mail import Message

from ..models import db, User, PasswordResetToken
from .errors import APIError

logger = logging.getLogger(__name__)


def hash_password(password):
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=current_app.config.get('BCRYPT_ROUNDS', 12))
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password, password_hash):
    """Verify a password against its hash"""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def generate_jwt_token(user, expires_in=None):
    """Generate a JWT access token for a user"""
    if expires_in is None:
        expires_in = current_app.config.get('JWT_ACCESS_TOKEN_EXPIRES', 3600)
    now = datetime.utcnow()
    payload = {
        'user_id': user.user_id,
        'role': user.role,
        'exp': now + timedelta(seconds=expires_in),
        'iat': now,
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'], algorithm='HS256')


def verify_jwt_token(token):
    """Verify and decode a JWT token; None when invalid or expired"""
    try:
        return jwt.decode(token, current_app.config['JWT_SECRET_KEY'], algorithms=['HS256'])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def get_current_user():
    """Resolve the bearer token on the current request to an active User"""
    auth_header = (request.headers.get('Authorization') or '').strip()
    if not auth_header.lower().startswith('bearer '):
        return None

    payload = verify_jwt_token(auth_header.split(' ', 1)[1].strip())
    if not payload:
        return None

    user = User.query.filter_by(user_id=payload.get('user_id')).first()
    if not user or not user.is_active():
        return None
    return user


def login_required(f):
    """Decorator to require an authenticated user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = get_current_user()
        if user is None:
            raise APIError('Unauthorized. Please log in.', 401, 'UNAUTHORIZED')
        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function


def admin_required(f):
    """Decorator to require an authenticated admin"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = get_current_user()
        if user is None:
            raise APIError('Unauthorized. Please log in.', 401, 'UNAUTHORIZED')
        if not user.is_admin():
            raise APIError('Admin access required', 403, 'FORBIDDEN')
        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function


def create_user(email, password, username, full_name=None, role='user'):
    """Create a new user with hashed password"""
    if not password or not password.strip():
        raise ValueError("Password cannot be empty")

    user = User(
        email=email,
        password_hash=hash_password(password),
        username=username,
        full_name=full_name,
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    logger.info(f"Created user {user.user_id} ({user.username})")
    return user


def authenticate_user(email, password):
    """Return the user when the credentials match, regardless of status"""
    user = User.query.filter_by(email=(email or '').strip().lower()).first()
    if user and verify_password(password, user.password_hash):
        return user
    return None


def create_password_reset_token(user):
    reset_token = PasswordResetToken(user.id)
    db.session.add(reset_token)
    db.session.commit()
    return reset_token


def get_user_by_reset_token(token):
    """Get the reset token record and its user when the token is still valid"""
    reset_token = PasswordResetToken.query.filter_by(token=token).first()
    if reset_token and reset_token.is_valid():
        return reset_token, db.session.get(User, reset_token.user_id)
    return None, None


def send_password_reset_email(user, reset_token):
    """Send password reset email to user"""
    reset_url = f"{current_app.config.get('FRONTEND_BASE_URL', '')}/reset-password?token={reset_token.token}"

    if current_app.config.get('TESTING'):
        logger.info(f"Skipping password reset email to {user.email} while testing")
        return True

    msg = Message(
        'Password Reset Request - FanHub',
        recipients=[user.email],
        sender=current_app.config.get('MAIL_DEFAULT_SENDER'),
    )
    msg.html = f"""
    <html>
        <body>
            <h2>Password Reset Request</h2>
            <p>You requested a password reset for your FanHub account.</p>
            <p><a href="{reset_url}">Reset Password</a></p>
            <p>This link will expire in 1 hour.</p>
            <p>If you didn't request this reset, please ignore this email.</p>
        </body>
    </html>
    """

    try:
        current_app.extensions['mail'].send(msg)
        return True
    except Exception as e:
        logger.error(f"Failed to send password reset email to {user.email}: {e}")
        return False

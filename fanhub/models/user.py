"""
User Models

This module contains the User and PasswordResetToken models.
"""

from datetime import datetime, timedelta
from .database import db
from .utils import generate_user_id, generate_password_reset_token

# Ordered lowest to highest
TIERS = ['grassroot', 'pioneer', 'elder', 'blood', 'enterprise']
TIER_RANKS = {tier: rank for rank, tier in enumerate(TIERS)}


class User(db.Model):
    """Fan account with role, membership tier and coin balance"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(12), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    username = db.Column(db.String(40), unique=True, nullable=False)
    full_name = db.Column(db.String(120))
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), default='user')  # user, admin
    tier = db.Column(db.String(20), default='grassroot')
    coins = db.Column(db.Integer, default=0, nullable=False)
    status = db.Column(db.String(20), default='active')  # active, suspended
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    password_reset_tokens = db.relationship('PasswordResetToken', backref='user', lazy=True)

    __table_args__ = (
        db.CheckConstraint('coins >= 0', name='ck_users_coins_non_negative'),
    )

    def __init__(self, email, password_hash, username, full_name=None, role='user'):
        from ..utils.validators import validate_email, validate_username

        email_validation = validate_email(email)
        if not email_validation.is_valid:
            raise ValueError(email_validation.error_message)

        username_validation = validate_username(username)
        if not username_validation.is_valid:
            raise ValueError(username_validation.error_message)

        self.email = email_validation.sanitized_value
        self.username = username_validation.sanitized_value
        self.password_hash = password_hash
        self.full_name = full_name
        self.role = role
        self.user_id = generate_user_id()
        self.tier = 'grassroot'
        self.coins = 0
        self.status = 'active'

    def __repr__(self):
        return f'<User {self.username}>'

    def is_active(self):
        return self.status == 'active'

    def is_admin(self):
        return self.role == 'admin'

    @property
    def tier_rank(self):
        return TIER_RANKS.get(self.tier, 0)

    def update_last_login(self):
        """Update the last login timestamp"""
        self.last_login = datetime.utcnow()
        db.session.commit()

    def to_dict(self, include_private=False):
        data = {
            'id': self.user_id,
            'username': self.username,
            'full_name': self.full_name,
            'tier': self.tier,
            'role': self.role,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_private:
            data.update({
                'email': self.email,
                'coins': self.coins,
                'status': self.status,
                'last_login': self.last_login.isoformat() if self.last_login else None,
            })
        return data


class PasswordResetToken(db.Model):
    """Password reset token for password recovery"""
    __tablename__ = 'password_reset_tokens'

    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(255), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(db.Boolean, default=False)

    def __init__(self, user_id, expires_in_hours=1):
        self.user_id = user_id
        self.token = generate_password_reset_token()
        self.expires_at = datetime.utcnow() + timedelta(hours=expires_in_hours)
        self.used = False

    def is_valid(self):
        """Check if token is valid and not expired"""
        return not self.used and datetime.utcnow() < self.expires_at

    def mark_used(self):
        self.used = True

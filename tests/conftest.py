"""
Test configuration and shared fixtures for FanHub tests.

This file contains:
- Centralized test configuration
- Shared fixtures used across multiple test files
- Common test utilities
"""

from datetime import datetime, timedelta

import pytest

from fanhub import create_app
from fanhub.models import db, User, Event, Category, PasswordResetToken
from fanhub.utils.auth_utils import hash_password, generate_jwt_token


# Centralized test configuration
TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SECRET_KEY': 'test-secret-key',
    'JWT_SECRET_KEY': 'test-jwt-secret-key',
    'JWT_ACCESS_TOKEN_EXPIRES': 3600,
    'BCRYPT_ROUNDS': 4,
    'MAIL_SERVER': 'localhost',
    'MAIL_PORT': 587,
    'MAIL_USE_TLS': False,
    'MAIL_USE_SSL': False,
    'MAIL_DEFAULT_SENDER': 'test@example.com',
    'PAYSTACK_SECRET_KEY': 'sk_test_secret',
    'PAYSTACK_BASE_URL': 'https://api.paystack.test',
    'PAYMENT_PREVIEW_MODE': True,
    'QR_TOKEN_SIGNING_SECRET': 'test-qr-secret',
    'RATE_LIMIT_PER_MINUTE': 1000,
    'APP_ENVIRONMENT': 'staging',
    'APP_VERSION': '1.0.0-test',
    'FRONTEND_BASE_URL': 'http://localhost:3000',
}

TEST_PASSWORD = 'fanpass99'


def make_user(email, username, role='user', coins=0, tier='grassroot'):
    user = User(email=email, password_hash=hash_password(TEST_PASSWORD), username=username, role=role)
    user.coins = coins
    user.tier = tier
    db.session.add(user)
    db.session.commit()
    return user


def bearer(user):
    return {'Authorization': f'Bearer {generate_jwt_token(user)}'}


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    app = create_app(TEST_CONFIG)
    return app


@pytest.fixture
def file_app(tmp_path):
    """App on a SQLite file, so each thread gets its own connection and real write locks."""
    app = create_app(dict(TEST_CONFIG, SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'fanhub.db'}"))
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def app_context(app):
    """Create an application context for database operations."""
    with app.app_context():
        yield


@pytest.fixture
def db_session(app_context):
    """Create a database session and clean up after tests."""
    db.create_all()
    yield db.session
    db.session.remove()
    db.drop_all()


@pytest.fixture
def test_user(db_session):
    """A regular fan with an empty wallet."""
    return make_user('fan@example.com', 'fan_one')


@pytest.fixture
def rich_user(db_session):
    """A fan with enough coins for purchases and withdrawals."""
    return make_user('rich@example.com', 'rich_fan', coins=50000)


@pytest.fixture
def admin_user(db_session):
    return make_user('admin@example.com', 'gate_admin', role='admin')


@pytest.fixture
def auth_headers(test_user):
    return bearer(test_user)


@pytest.fixture
def rich_headers(rich_user):
    return bearer(rich_user)


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user)


@pytest.fixture
def active_event(db_session):
    event = Event(
        slug='warri-again-live',
        title='Warri Again Live',
        description='Homecoming concert',
        venue='Warri Township Stadium',
        event_date=datetime.utcnow() + timedelta(days=30),
        capacity=3,
        current_attendance=0,
        ticket_price_naira=20000,
        ticket_price_coins=1000,
        status='active',
    )
    db_session.add(event)
    db_session.commit()
    return event


@pytest.fixture
def category(db_session):
    return Category.query.filter_by(slug='general').first()


@pytest.fixture
def password_reset_token(db_session, test_user):
    token = PasswordResetToken(test_user.id)
    db_session.add(token)
    db_session.commit()
    return token


@pytest.fixture
def expired_password_reset_token(db_session, test_user):
    token = PasswordResetToken(test_user.id)
    token.expires_at = datetime.utcnow() - timedelta(hours=2)
    db_session.add(token)
    db_session.commit()
    return token

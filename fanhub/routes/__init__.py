"""
Routes Package

This package contains all Flask route blueprints.
"""

from .auth import auth_bp
from .main import main_bp
from .wallet import wallet_bp
from .payments import payments_bp
from .tickets import tickets_bp
from .membership import membership_bp
from .community import community_bp
from .flags import flags_bp
from .meet_greet import meet_greet_bp
from .admin import admin_bp

# Blueprints mounted under /api
API_BLUEPRINTS = [
    wallet_bp,
    payments_bp,
    tickets_bp,
    membership_bp,
    community_bp,
    flags_bp,
    meet_greet_bp,
    admin_bp,
]

__all__ = [
    'auth_bp',
    'main_bp',
    'API_BLUEPRINTS',
]

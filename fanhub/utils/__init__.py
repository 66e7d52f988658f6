"""
Utilities Package

This package contains the domain services and shared helpers used by the routes.
"""

from . import auth_utils
from . import validators
from . import error_handlers
from . import errors

__all__ = [
    'auth_utils',
    'validators',
    'error_handlers',
    'errors',
]

"""
Model Utilities

Identifier and token generators shared by the models and services.
"""

import secrets
import string
import time

_UPPER_ALNUM = string.ascii_uppercase + string.digits
_ALNUM = string.ascii_lowercase + string.digits


def generate_user_id():
    """Generate a unique 12-character public user ID"""
    return ''.join(secrets.choice(_UPPER_ALNUM) for _ in range(12))


def generate_password_reset_token():
    """Generate a secure password reset token"""
    return secrets.token_urlsafe(32)


def generate_ticket_number():
    """Ticket number: 'FH' + epoch millis + 9 uppercase alphanumerics"""
    suffix = ''.join(secrets.choice(_UPPER_ALNUM) for _ in range(9))
    return f"FH{int(time.time() * 1000)}{suffix}"


def generate_reference(prefix, user_id=None):
    """Payment/transfer reference such as 'membership_pioneer_ab12cd34_1700000000000_x1y2z3'"""
    parts = [prefix]
    if user_id:
        parts.append(str(user_id)[-8:])
    parts.append(str(int(time.time() * 1000)))
    parts.append(''.join(secrets.choice(_ALNUM) for _ in range(6)))
    return '_'.join(parts)


def generate_room_id():
    """Opaque video-call room identifier"""
    return 'room_' + secrets.token_hex(8)

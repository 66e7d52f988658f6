"""
Ticket QR Tokens

The public `qr_code` identifies the ticket; the `qr_token` proves possession.
Only sha256(qr_token) is stored, so a database leak does not yield admissible tokens.
"""

import hashlib
import hmac
import time

from flask import current_app


def build_qr_code(event_id, user_public_id, timestamp=None, nonce=None):
    """'FH-{event8}-{user8}-{timestamp}', plus '-{nonce}' when given"""
    timestamp = timestamp or int(time.time() * 1000)
    code = f"FH-{str(event_id)[:8]}-{str(user_public_id)[:8]}-{timestamp}"
    return f"{code}-{nonce}" if nonce else code


def generate_qr_token(event_id, user_public_id, ticket_number, timestamp, secret=None):
    secret = secret or current_app.config['QR_TOKEN_SIGNING_SECRET']
    message = f"{event_id}{user_public_id}{ticket_number}{timestamp}".encode('utf-8')
    return hmac.new(secret.encode('utf-8'), message, hashlib.sha256).hexdigest()


def hash_qr_token(qr_token):
    return hashlib.sha256(qr_token.encode('utf-8')).hexdigest()


def verify_qr_token(qr_token, stored_hash):
    if not qr_token or not stored_hash:
        return False
    return hmac.compare_digest(hash_qr_token(qr_token), stored_hash)

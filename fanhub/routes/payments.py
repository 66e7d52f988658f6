"""
Payment Gateway Routes

FLOW OVERVIEW
- /api/payments/initialize [POST]
  • {context, amount, coins?} → pending transaction + checkout URL.
- /api/payments/webhook [POST]
  • Verify x-paystack-signature → on charge.success settle the referenced transaction once.
"""

import json
import logging

from flask import Blueprint, current_app, g, jsonify, request

from ..utils.api_utils import rate_limited, request_validator
from ..utils.auth_utils import login_required
from ..utils.errors import APIError
from ..utils.paystack import validate_webhook_signature
from ..utils.wallet_service import wallet_service

payments_bp = Blueprint('payments', __name__)
logger = logging.getLogger(__name__)


@payments_bp.route('/payments/initialize', methods=['POST'])
@rate_limited('payments')
@login_required
def initialize_payment():
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['context'])

    coins = request_validator.get_int(data, 'coins', minimum=0, default=0)
    amount = request_validator.get_int(data, 'amount', minimum=0, default=0)
    result = wallet_service.initialize_payment(g.current_user, data['context'], amount, coins)
    return jsonify({'success': True, **result}), 201


@payments_bp.route('/payments/webhook', methods=['POST'])
def paystack_webhook():
    """Paystack event notifications"""
    payload = request.get_data()
    signature = request.headers.get('x-paystack-signature')
    secret = current_app.config.get('PAYSTACK_SECRET_KEY', '')

    if not validate_webhook_signature(payload, signature, secret):
        logger.warning(f"Rejected webhook with invalid signature from {request_validator.client_ip()}")
        raise APIError('Invalid signature', 401, 'INVALID_SIGNATURE')

    try:
        event = json.loads(payload or b'{}')
    except ValueError:
        raise APIError('Invalid JSON payload', 400, 'INVALID_JSON')
    if not isinstance(event, dict):
        raise APIError('Webhook payload must be a JSON object', 400, 'INVALID_JSON')

    if event.get('event') != 'charge.success':
        return jsonify({'success': True, 'message': 'Event not handled'})

    charge = event.get('data') or {}
    if not isinstance(charge, dict):
        raise APIError('Webhook data must be a JSON object', 400, 'INVALID_JSON')
    reference = charge.get('reference')
    if not reference:
        raise APIError('Missing reference', 400, 'MISSING_FIELDS')

    transaction, already_processed = wallet_service.apply_successful_charge(reference, charge)
    return jsonify({
        'success': True,
        'message': 'Already processed' if already_processed else 'Payment processed',
        'reference': transaction.reference,
    })

"""
Paystack Gateway Client

FLOW OVERVIEW
- PaystackClient.initialize_transaction → POST /transaction/initialize, returns authorization data.
- PaystackClient.verify_transaction → GET /transaction/verify/<reference>, returns the charge.
- validate_webhook_signature → HMAC-SHA512 of the raw body against x-paystack-signature.
- verify_payment → verification used by the routes; answers locally in preview mode.

Amounts sent to and received from Paystack are in kobo (naira * 100).
"""

import hashlib
import hmac
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import requests
from flask import current_app

from .errors import PaymentVerificationError
from .prom_metrics import observe_payment_verification

logger = logging.getLogger(__name__)

# Accepted difference between expected and paid amount, in kobo
AMOUNT_TOLERANCE_KOBO = 100


class PaystackClient:
    """Thin wrapper over the Paystack REST API"""

    def __init__(self, secret_key: str, base_url: str = 'https://api.paystack.co', timeout: int = 15):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.secret_key}',
            'Content-Type': 'application/json',
        }

    def _handle(self, response, action: str) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok or not body.get('status'):
            message = body.get('message') or f'Paystack {action} failed'
            self.logger.warning(f"Paystack {action} failed with HTTP {response.status_code}: {message}")
            raise PaymentVerificationError(message)

        return body.get('data') or {}

    def initialize_transaction(self, email: str, amount_kobo: int, reference: str,
                               callback_url: Optional[str] = None,
                               metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = {'email': email, 'amount': amount_kobo, 'reference': reference}
        if callback_url:
            payload['callback_url'] = callback_url
        if metadata:
            payload['metadata'] = metadata

        try:
            response = requests.post(
                f'{self.base_url}/transaction/initialize',
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self.logger.error(f"Paystack initialize request error for {reference}: {e}")
            raise PaymentVerificationError('Payment gateway unavailable')

        return self._handle(response, 'initialize')

    def verify_transaction(self, reference: str) -> Dict[str, Any]:
        try:
            response = requests.get(
                f'{self.base_url}/transaction/verify/{reference}',
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self.logger.error(f"Paystack verify request error for {reference}: {e}")
            raise PaymentVerificationError('Payment gateway unavailable')

        return self._handle(response, 'verify')


def validate_webhook_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """Check the x-paystack-signature header against the raw request body"""
    if not signature or not secret:
        return False
    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    expected = hmac.new(secret.encode('utf-8'), payload, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)


def is_preview_mode() -> bool:
    return bool(current_app.config.get('PAYMENT_PREVIEW_MODE', False))


def get_client() -> PaystackClient:
    return PaystackClient(
        current_app.config.get('PAYSTACK_SECRET_KEY', ''),
        current_app.config.get('PAYSTACK_BASE_URL', 'https://api.paystack.co'),
    )


def verify_payment(reference: str, expected_naira: int, context: str) -> Dict[str, Any]:
    """
    Verify a charge and check it covers the expected amount.

    Args:
        reference: Gateway reference supplied by the client
        expected_naira: Amount the caller should have paid, in naira
        context: Label for metrics and logs (coins, ticket, membership, meet_greet)

    Returns:
        The charge data as reported by the gateway (synthetic in preview mode)

    Raises:
        PaymentVerificationError: when the charge is missing, unsuccessful or short
    """
    expected_kobo = int(expected_naira) * 100

    if is_preview_mode():
        logger.info(f"Preview mode: treating {context} payment {reference} as successful")
        observe_payment_verification(context, 'preview')
        return {
            'status': 'success',
            'reference': reference,
            'amount': expected_kobo,
            'currency': 'NGN',
            'paid_at': datetime.utcnow().isoformat(),
            'preview': True,
        }

    try:
        data = get_client().verify_transaction(reference)
    except PaymentVerificationError:
        observe_payment_verification(context, 'error')
        raise

    if data.get('status') != 'success':
        observe_payment_verification(context, 'unsuccessful')
        raise PaymentVerificationError('Payment was not successful', details={'payment_status': data.get('status')})

    paid_kobo = int(data.get('amount') or 0)
    if abs(paid_kobo - expected_kobo) > AMOUNT_TOLERANCE_KOBO:
        observe_payment_verification(context, 'amount_mismatch')
        logger.warning(f"Amount mismatch for {reference}: expected {expected_kobo} kobo, got {paid_kobo}")
        raise PaymentVerificationError('Payment amount mismatch')

    observe_payment_verification(context, 'success')
    return data

"""
Domain Errors

Services raise these; `error_handlers.register_error_handlers` turns them into
JSON responses of the form {"success": false, "error": ..., "code": ...}.
"""


class APIError(Exception):
    """Error carrying an HTTP status and a machine-readable code"""

    def __init__(self, message, status_code=400, error_code='BAD_REQUEST', details=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self):
        payload = {
            'success': False,
            'error': self.message,
            'code': self.error_code,
        }
        payload.update(self.details)
        return payload


class InsufficientBalanceError(APIError):
    def __init__(self, balance, required):
        super().__init__(
            'Insufficient coin balance',
            status_code=400,
            error_code='INSUFFICIENT_BALANCE',
            details={'balance': balance, 'required': required},
        )


class PaymentVerificationError(APIError):
    def __init__(self, message='Payment verification failed', details=None):
        super().__init__(message, status_code=400, error_code='PAYMENT_VERIFICATION_FAILED', details=details)

"""
API Utilities Module

FLOW OVERVIEW
- APIRequestValidator
  • get_json_object → parse the body and require a JSON object, else APIError 400.
  • require_fields → ensure named keys are present and non-empty.
  • require_strings → reject non-string values for text fields.
  • get_int → coerce a field to int with optional bounds.
  • client_ip → first X-Forwarded-For hop or remote_addr.

- APIRateLimiter
  • check_rate_limit(client_ip, bucket) → fixed one-minute window per IP and bucket.
  • rate_limited(bucket) decorator → 429 with Retry-After when the window is full.
"""

import logging
import time
from functools import wraps
from typing import Any, Dict, Iterable, Optional, Tuple

from flask import current_app, jsonify, request

from .errors import APIError


class APIRequestValidator:
    """Handles common request validation logic."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def client_ip() -> str:
        forwarded = request.headers.get('X-Forwarded-For', '')
        if forwarded:
            return forwarded.split(',')[0].strip()
        return request.remote_addr or 'unknown'

    def get_json_object(self) -> Dict[str, Any]:
        """
        Parse the request body as a JSON object.

        Returns:
            The decoded dict

        Raises:
            APIError: when the body is missing, malformed or not an object
        """
        data = request.get_json(silent=True)
        if data is None:
            self.logger.warning(f"Invalid or missing JSON from {self.client_ip()}")
            raise APIError('Invalid request format. JSON payload required.', 400, 'INVALID_JSON')

        if not isinstance(data, dict):
            self.logger.warning(f"Invalid data type from {self.client_ip()}: {type(data)}")
            raise APIError('Request data must be a JSON object.', 400, 'INVALID_DATA_TYPE')

        return data

    def require_fields(self, data: Dict[str, Any], fields: Iterable[str]) -> None:
        missing = [name for name in fields if data.get(name) in (None, '')]
        if missing:
            raise APIError(f"Missing required fields: {', '.join(missing)}", 400, 'MISSING_FIELDS')

    def require_strings(self, data: Dict[str, Any], fields: Iterable[str]) -> None:
        wrong = [name for name in fields if data.get(name) is not None and not isinstance(data[name], str)]
        if wrong:
            raise APIError(f"Fields must be strings: {', '.join(wrong)}", 400, 'INVALID_FIELD_TYPE')

    def get_int(self, data: Dict[str, Any], field: str, minimum: Optional[int] = None,
                maximum: Optional[int] = None, default: Optional[int] = None) -> Optional[int]:
        value = data.get(field, default)
        if value is None:
            return None
        if isinstance(value, bool):
            raise APIError(f"{field} must be an integer", 400, 'INVALID_NUMBER')
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise APIError(f"{field} must be an integer", 400, 'INVALID_NUMBER')
        if isinstance(value, float) and value != number:
            raise APIError(f"{field} must be a whole number", 400, 'INVALID_NUMBER')
        if minimum is not None and number < minimum:
            raise APIError(f"{field} must be at least {minimum}", 400, 'INVALID_NUMBER')
        if maximum is not None and number > maximum:
            raise APIError(f"{field} must be at most {maximum}", 400, 'INVALID_NUMBER')
        return number


class APIRateLimiter:
    """Handles rate limiting logic."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def check_rate_limit(self, client_ip: str, bucket: str = 'default') -> Tuple[bool, int]:
        """
        Count a request for the client in the current one-minute window.

        Args:
            client_ip: Client IP address
            bucket: Name of the guarded endpoint group

        Returns:
            Tuple of (is_allowed, retry_after_seconds)
        """
        if not hasattr(current_app, 'rate_limit_counts'):
            current_app.rate_limit_counts = {}
        counts = current_app.rate_limit_counts

        limit = current_app.config.get('RATE_LIMIT_PER_MINUTE', 100)
        now = time.time()
        window = int(now // 60)
        key = (bucket, client_ip, window)
        counts[key] = counts.get(key, 0) + 1

        # Drop windows older than five minutes
        for old_key in [k for k in counts if k[2] < window - 5]:
            del counts[old_key]

        if counts[key] > limit:
            retry_after = max(1, int((window + 1) * 60 - now))
            self.logger.warning(f"Rate limit exceeded for {client_ip} on {bucket}: {counts[key]} requests")
            return False, retry_after

        return True, 0


# Global instances
request_validator = APIRequestValidator()
rate_limiter = APIRateLimiter()


def rate_limited(bucket):
    """Decorator applying the per-IP limiter to a view"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            allowed, retry_after = rate_limiter.check_rate_limit(request_validator.client_ip(), bucket)
            if not allowed:
                response = jsonify({
                    'success': False,
                    'error': 'Too many requests. Please try again later.',
                    'code': 'RATE_LIMIT_EXCEEDED',
                    'retry_after': retry_after,
                })
                response.status_code = 429
                response.headers['Retry-After'] = str(retry_after)
                return response
            return f(*args, **kwargs)
        return decorated_function
    return decorator

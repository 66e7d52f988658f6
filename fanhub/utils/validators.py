"""
Input Validation and Security Utilities

FLOW OVERVIEW
- validate_email(email)
  • RFC-like syntax checks and basic security checks; returns sanitized lowercased value.
- validate_username(username)
  • 3-30 chars of letters, digits and underscores; returns the trimmed value.
- validate_password_strength(password)
  • Minimum length 6 and not one of the well-known weak passwords.
- validate_post_content(content, max_length)
  • Required, bounded, and free of links.
- validate_bank_details(bank_code, account_number, account_name)
  • Known Nigerian bank code, 10-digit NUBAN account number, readable account name.
- sanitize_input(input, max_length)
  • Trim, bound length, normalize, and remove null bytes.
"""

import re
from typing import Optional
from dataclasses import dataclass


@dataclass
class ValidationResult:
    """Result of validation operation"""
    is_valid: bool
    error_message: Optional[str] = None
    sanitized_value: Optional[str] = None


# Paystack bank codes accepted for withdrawals
NIGERIAN_BANKS = {
    '044': 'Access Bank',
    '014': 'Afribank',
    '023': 'Citibank',
    '050': 'Ecobank',
    '011': 'First Bank',
    '214': 'First City Monument Bank',
    '070': 'Fidelity Bank',
    '058': 'Guaranty Trust Bank',
    '030': 'Heritage Bank',
    '082': 'Keystone Bank',
    '076': 'Polaris Bank',
    '221': 'Stanbic IBTC Bank',
    '068': 'Standard Chartered',
    '232': 'Sterling Bank',
    '032': 'Union Bank',
    '033': 'United Bank for Africa',
    '215': 'Unity Bank',
    '035': 'Wema Bank',
    '057': 'Zenith Bank',
}


class InputValidator:
    """Input validation shared by models and routes"""

    EMAIL_PATTERN = re.compile(
        r'^[a-zA-Z0-9.!#$%&\'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$'
    )

    USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_]{3,30}$')

    URL_PATTERN = re.compile(r'(https?://|www\.)\S+', re.IGNORECASE)

    XSS_PATTERNS = [
        r'<script[^>]*>.*?</script>',
        r'javascript:',
        r'on\w+\s*=',
        r'<iframe[^>]*>',
        r'data:text/html',
        r'vbscript:',
    ]

    WEAK_PASSWORDS = {
        'password', '123456', '1234567', '12345678', 'qwerty', 'abc123',
        'password123', 'admin', 'letmein', 'welcome', 'monkey', 'dragon', '111111',
    }

    @classmethod
    def validate_email(cls, email: str) -> ValidationResult:
        """
        Validate email address

        Args:
            email: Email address to validate

        Returns:
            ValidationResult with validation status and sanitized value
        """
        if not email or not isinstance(email, str):
            return ValidationResult(False, "Email must be a non-empty string")

        email = email.strip()
        if email == "":
            return ValidationResult(False, "Email cannot be empty")

        if len(email) > 254:
            return ValidationResult(False, "Email address too long (max 254 characters)")

        if email.count('@') != 1:
            return ValidationResult(False, "Email must contain exactly one @ symbol")

        if not cls.EMAIL_PATTERN.match(email):
            return ValidationResult(False, "Invalid email format")

        local_part, domain = email.split('@')
        if len(local_part) > 64:
            return ValidationResult(False, "Email local part too long (max 64 characters)")

        if local_part.startswith('.') or local_part.endswith('.') or '..' in local_part:
            return ValidationResult(False, "Invalid email format")

        if cls._contains_xss(email):
            return ValidationResult(False, "Email contains invalid characters")

        return ValidationResult(True, sanitized_value=email.lower())

    @classmethod
    def validate_username(cls, username: str) -> ValidationResult:
        if not username or not isinstance(username, str):
            return ValidationResult(False, "Username must be a non-empty string")

        username = username.strip()
        if not cls.USERNAME_PATTERN.match(username):
            return ValidationResult(False, "Username must be 3-30 characters of letters, numbers or underscores")

        return ValidationResult(True, sanitized_value=username)

    @classmethod
    def validate_password_strength(cls, password: str) -> ValidationResult:
        """
        Validate password strength requirements

        Args:
            password: Password to validate

        Returns:
            ValidationResult with validation status
        """
        if not password or not isinstance(password, str):
            return ValidationResult(False, "Password must be a non-empty string")

        if len(password) < 6:
            return ValidationResult(False, "Password must be at least 6 characters long")

        if len(password) > 128:
            return ValidationResult(False, "Password too long (max 128 characters)")

        if password.lower() in cls.WEAK_PASSWORDS:
            return ValidationResult(False, "Password is too common, choose a stronger password")

        return ValidationResult(True)

    @classmethod
    def validate_post_content(cls, content: str, max_length: int = 5000) -> ValidationResult:
        if not content or not isinstance(content, str) or not content.strip():
            return ValidationResult(False, "Content is required")

        content = cls.sanitize_input(content, max_length=max_length + 1)
        if len(content) > max_length:
            return ValidationResult(False, f"Content must be at most {max_length} characters")

        if cls.contains_url(content):
            return ValidationResult(False, "Links are not allowed in posts")

        if cls._contains_xss(content):
            return ValidationResult(False, "Content contains invalid markup")

        return ValidationResult(True, sanitized_value=content)

    @classmethod
    def validate_bank_details(cls, bank_code, account_number, account_name) -> ValidationResult:
        """Validate withdrawal destination; sanitized_value is the bank name"""
        if not bank_code or not account_number or not account_name:
            return ValidationResult(False, "Bank code, account number and account name are required")

        if str(bank_code) not in NIGERIAN_BANKS:
            return ValidationResult(False, "Unsupported bank code")

        if not re.fullmatch(r'\d{10}', str(account_number)):
            return ValidationResult(False, "Account number must be exactly 10 digits")

        if len(str(account_name).strip()) < 2:
            return ValidationResult(False, "Account name is too short")

        return ValidationResult(True, sanitized_value=NIGERIAN_BANKS[str(bank_code)])

    @classmethod
    def contains_url(cls, text: str) -> bool:
        return bool(cls.URL_PATTERN.search(text or ''))

    @classmethod
    def sanitize_input(cls, input_string: str, max_length: int = 1000) -> str:
        """
        Sanitize user input

        Args:
            input_string: Input string to sanitize
            max_length: Maximum allowed length

        Returns:
            Sanitized string
        """
        if not input_string:
            return ""

        sanitized = str(input_string).strip()

        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length]

        sanitized = sanitized.replace('\x00', '')
        sanitized = sanitized.replace('\r\n', '\n').replace('\r', '\n')

        return sanitized

    @classmethod
    def _contains_xss(cls, text: str) -> bool:
        """Check if text contains XSS patterns"""
        for pattern in cls.XSS_PATTERNS:
            if re.search(pattern, text, re.IGNORECASE | re.DOTALL):
                return True
        return False


# Convenience functions for common validations
def validate_email(email: str) -> ValidationResult:
    """Validate email address"""
    return InputValidator.validate_email(email)


def validate_username(username: str) -> ValidationResult:
    """Validate username"""
    return InputValidator.validate_username(username)


def validate_password_strength(password: str) -> ValidationResult:
    """Validate password strength"""
    return InputValidator.validate_password_strength(password)


def validate_post_content(content: str, max_length: int = 5000) -> ValidationResult:
    return InputValidator.validate_post_content(content, max_length)


def validate_bank_details(bank_code, account_number, account_name) -> ValidationResult:
    return InputValidator.validate_bank_details(bank_code, account_number, account_name)


def contains_url(text: str) -> bool:
    return InputValidator.contains_url(text)


def sanitize_input(input_string: str, max_length: int = 1000) -> str:
    """Sanitize user input"""
    return InputValidator.sanitize_input(input_string, max_length)

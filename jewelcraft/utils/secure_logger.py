"""
PII-safe logging
Scrubs personal and payment data before anything reaches the log handlers
"""
import logging
import re
from typing import Any, Dict, Optional

from ..config import settings

# Field names that are never logged, compared without case, "_" or "-"
SENSITIVE_FIELDS = [
    # Personal information
    "email", "phone", "phoneNumber", "phone_number",
    "firstName", "first_name", "lastName", "last_name", "fullName", "full_name",
    "name", "address", "street", "city", "state", "zipCode", "zip_code", "postalCode", "postal_code",
    # Financial information
    "cardNumber", "card_number", "cvv", "cvc", "expiryDate", "expiry_date",
    "bankAccount", "bank_account", "routingNumber", "routing_number",
    "stripeToken", "stripe_token", "paymentMethod", "payment_method",
    # Authentication
    "password", "passwd", "pwd", "token", "apiKey", "api_key", "accessToken", "access_token",
    "refreshToken", "refresh_token", "sessionId", "session_id", "secret",
    # Identifiers
    "ssn", "social_security", "passport", "driverLicense", "driver_license",
    "nationalId", "national_id", "taxId", "tax_id",
    # Network
    "ipAddress", "ip_address", "ip", "userAgent", "user_agent",
]

_NORMALIZED_FIELDS = [re.sub(r'[_-]', '', f.lower()) for f in SENSITIVE_FIELDS]

SENSITIVE_PATTERNS = [
    (re.compile(r'\b\d{3}-\d{2}-\d{4}\b'), "SSN"),
    (re.compile(r'\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b'), "CARD_NUMBER"),
    (re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'), "EMAIL"),
    (re.compile(r'\b\d{3}[-.]?\d{3}[-.]?\d{4}\b'), "PHONE"),
    (re.compile(r'\b(?:\d{1,3}\.){3}\d{1,3}\b'), "IP_ADDRESS"),
]

MAX_DEPTH = 10
REDACTED = "[REDACTED]"


def is_sensitive_field(key: str) -> bool:
    normalized = re.sub(r'[_-]', '', str(key).lower())
    return any(field in normalized for field in _NORMALIZED_FIELDS)


def scrub_string(value: str) -> str:
    """Replace anything that looks like an SSN, card, email, phone or IP"""
    for pattern, name in SENSITIVE_PATTERNS:
        value = pattern.sub(f"[REDACTED_{name}]", value)
    return value


def scrub_object(obj: Any, depth: int = 0) -> Any:
    """
    Recursively scrub dicts, lists and strings
    Args:
        obj: Value to scrub
        depth: Current nesting depth
    Returns:
        Scrubbed copy, sensitive keys replaced with [REDACTED]
    """
    if depth > MAX_DEPTH:
        return "[MAX_DEPTH_EXCEEDED]"
    if obj is None:
        return obj
    if isinstance(obj, str):
        return scrub_string(obj)
    if isinstance(obj, (list, tuple)):
        return [scrub_object(item, depth + 1) for item in obj]
    if isinstance(obj, dict):
        scrubbed = {}
        for key, value in obj.items():
            if is_sensitive_field(key):
                scrubbed[key] = REDACTED
            else:
                scrubbed[key] = scrub_object(value, depth + 1)
        return scrubbed
    return obj


class PIIScrubbingFilter(logging.Filter):
    """Logging filter that scrubs the formatted message of every record"""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            return True
        record.msg = scrub_string(message)
        record.args = None
        return True


class SecureLogger:
    """
    Structured logger for user-facing actions
    Context dicts are scrubbed, stack traces are only logged outside production
    """

    def __init__(self, name: str = "jewelcraft.secure", production: Optional[bool] = None):
        self._logger = logging.getLogger(name)
        self.production = settings.is_production if production is None else production

    def _format(self, message: str, context: Optional[Dict[str, Any]]) -> str:
        if not context:
            return scrub_string(message)
        scrubbed = scrub_object(context)
        pairs = " ".join(f"{k}={v}" for k, v in scrubbed.items() if v is not None)
        return f"{scrub_string(message)} {pairs}".strip()

    def debug(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        if not self.production:
            self._logger.debug(self._format(message, context))

    def info(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._logger.info(self._format(message, context))

    def warn(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._logger.warning(self._format(message, context))

    def error(self, message: str, error: Optional[BaseException] = None, context: Optional[Dict[str, Any]] = None) -> None:
        details = dict(context or {})
        if error is not None:
            details["errorType"] = type(error).__name__
            details["errorMessage"] = scrub_string(str(error))
        self._logger.error(
            self._format(message, details),
            exc_info=error if (error is not None and not self.production) else None,
        )

    def audit(self, action: str, user_id: str, resource: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Audit trail entry, user id only"""
        context = {"userId": user_id, "action": action, "resource": resource}
        context.update(metadata or {})
        self.info(f"Audit: {action}", context)

    def api_request(
        self,
        method: str,
        path: str,
        user_id: Optional[str] = None,
        duration: Optional[float] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.info("API Request", {
            "method": method,
            "path": path,
            "userId": user_id,
            "duration": duration,
            "statusCode": status_code,
        })

    def gdpr(self, action: str, user_id: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """consent, export, deletion or rectification"""
        context = {"userId": user_id, "action": action}
        context.update(metadata or {})
        self.info(f"GDPR: {action}", context)


secure_logger = SecureLogger()

"""Security configuration constants for ReportPilot API.

This module centralizes security-related configuration including:
- Sensitive keys that should be sanitized from logs
- Error handling security settings
"""

# Keys automatically redacted from structured logs
SENSITIVE_KEYS: set[str] = {
    # Provider credentials
    "api_key",
    "secret",
    "token",
    "access_token",
    "authorization",
    "bearer",
    "password",
    "key",
    # Headers
    "set-cookie",
    "cookie",
    "x-api-key",
    "x-goog-api-key",
    # Personal information entered in the project form
    "student_name",
    "email",
    "phone",
}

# Production error responses only carry these fields to prevent
# information leakage
PRODUCTION_ERROR_FIELDS: set[str] = {
    "correlation_id",
    "type",
}

# Development adds diagnostic fields
DEVELOPMENT_ERROR_FIELDS: set[str] = PRODUCTION_ERROR_FIELDS | {
    "details",
    "traceback",
    "exception_type",
    "validation_errors",
}


def get_allowed_error_fields(environment: str) -> set[str]:
    """Get allowed error response fields based on environment.

    Args:
        environment: The application environment (production, development, etc.)

    Returns:
        Set of allowed field names for error responses
    """
    if environment == "production":
        return PRODUCTION_ERROR_FIELDS.copy()
    else:
        return DEVELOPMENT_ERROR_FIELDS.copy()


def is_sensitive_key(key: str) -> bool:
    """Check if a key should be considered sensitive and redacted."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)

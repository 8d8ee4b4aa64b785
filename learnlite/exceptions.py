"""
learnlite/exceptions.py
Domain errors raised by the service layer

Services never pick HTTP status codes. They raise one of the variants
below with a stable machine-readable code; the HTTP layer in
learnlite/errors.py maps each variant to its status.
"""
from typing import Dict, List, Optional


class DomainError(Exception):
    """Base exception for all business rule failures"""
    default_code: str = "INTERNAL_ERROR"
    default_message: str = "An internal error occurred"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)

    def __repr__(self):
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(DomainError):
    """
    Malformed or missing input.

    Carries the offending fields as a list of {field, message} dicts.
    """
    default_code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(self, fields: Optional[List[Dict[str, str]]] = None, message: Optional[str] = None):
        self.fields = list(fields or [])
        super().__init__(message or self.default_message, self.default_code)


class BusinessRuleError(DomainError):
    """Well-formed request that the current state of the data does not allow."""
    default_code = "BAD_REQUEST"
    default_message = "Request cannot be fulfilled"


class AuthenticationError(DomainError):
    default_code = "UNAUTHORIZED"
    default_message = "Authentication required"


class ForbiddenError(DomainError):
    """Role or ownership mismatch."""
    default_code = "FORBIDDEN"
    default_message = "Insufficient permissions"


class NotFoundError(DomainError):
    default_code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(DomainError):
    """Duplicate of a row guarded by a unique constraint."""
    default_code = "CONFLICT"
    default_message = "Resource already exists"


class InternalError(DomainError):
    default_code = "INTERNAL_ERROR"
    default_message = "An internal error occurred"

"""
learnlite/validators.py
Normalization helpers for query values and prices

Request bodies are validated by the pydantic models in learnlite.schemas.
What stays here are the lenient helpers for values that arrive as raw
strings (query parameters, certificate codes) and the price rule that the
course models share with the course service.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Tuple

from learnlite.orm.user import UserRole

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

TITLE_MAX_LENGTH = 255
NAME_MAX_LENGTH = 200
PASSWORD_MIN_LENGTH = 6
CERTIFICATE_CODE_MIN_LENGTH = 10
CERTIFICATE_CODE_MAX_LENGTH = 100

# courses.price_cents is a 32-bit INTEGER column
MAX_PRICE_CENTS = 2_147_483_647


def normalize_price(value: Any) -> Optional[int]:
    """
    Normalize a price to integer cents.

    Whole numbers are taken as cents. Numbers with a fractional part are
    taken as major units and converted (19.99 -> 1999, half-up). Numeric
    strings follow the same rule; whole-number strings are parsed exactly.
    Anything else returns None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    else:
        return None

    if not amount.is_finite():
        return None
    if amount == amount.to_integral_value():
        return int(amount)
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def parse_positive_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def clamp_pagination(page: Any = None, limit: Any = None) -> Tuple[int, int]:
    """
    Resolve page/limit query values.

    Invalid or non-positive values fall back to page=1 / limit=10 and the
    limit is capped at 100.
    """
    resolved_page = parse_positive_int(page) or DEFAULT_PAGE
    resolved_limit = parse_positive_int(limit) or DEFAULT_LIMIT
    return resolved_page, min(resolved_limit, MAX_LIMIT)


def sanitize_search(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def is_plausible_certificate_code(value: Any) -> bool:
    return (
        isinstance(value, str)
        and CERTIFICATE_CODE_MIN_LENGTH <= len(value) <= CERTIFICATE_CODE_MAX_LENGTH
    )


def parse_role(value: Any) -> Optional[UserRole]:
    if not isinstance(value, str):
        return None
    try:
        return UserRole(value)
    except ValueError:
        return None

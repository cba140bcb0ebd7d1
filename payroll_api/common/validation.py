# payroll_api/common/validation.py
"""
Request field coercion. Each helper returns the cleaned value or raises
``ValidationError`` with a single-field ``errors`` entry, so blueprints can
call them inline and let the error handler render the 400.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from payroll_api.common.errors import ValidationError

_MARKUP_RE = re.compile(r"[<>]")
_JS_PROTO_RE = re.compile(r"javascript:", re.IGNORECASE)
_INLINE_HANDLER_RE = re.compile(r"on\w+=", re.IGNORECASE)

NAME_RE = re.compile(r"^[a-zA-ZáéíóúÁÉÍÓÚñÑüÜ\s]+$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
ALNUM_RE = re.compile(r"^[a-zA-Z0-9]+$")
ACCOUNT_RE = re.compile(r"^[a-zA-Z0-9-]+$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _bad(field: str, message: str):
    return ValidationError("Validation error", errors=[{"field": field, "message": message}])


def sanitize_text(value: Optional[str]) -> Optional[str]:
    """Strip markup and inline-script fragments from free text."""
    if value is None:
        return None
    value = _MARKUP_RE.sub("", value)
    value = _JS_PROTO_RE.sub("", value)
    value = _INLINE_HANDLER_RE.sub("", value)
    return value.strip()


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def positive_int(value, field: str, required: bool = True) -> Optional[int]:
    if is_blank(value):
        if required:
            raise _bad(field, f"{field} is required")
        return None
    if isinstance(value, bool):
        raise _bad(field, f"{field} must be a positive integer")
    try:
        out = int(str(value).strip())
    except (TypeError, ValueError):
        raise _bad(field, f"{field} must be a positive integer")
    if out < 1:
        raise _bad(field, f"{field} must be a positive integer")
    return out


def iso_date(value, field: str, required: bool = True) -> Optional[date]:
    if is_blank(value):
        if required:
            raise _bad(field, f"{field} is required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        # accept full ISO timestamps too; only the calendar date matters
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise _bad(field, f"{field} must use the YYYY-MM-DD format")


def positive_decimal(value, field: str, required: bool = True) -> Optional[Decimal]:
    if is_blank(value):
        if required:
            raise _bad(field, f"{field} is required")
        return None
    if isinstance(value, bool):
        raise _bad(field, f"{field} must be a number greater than 0")
    try:
        out = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise _bad(field, f"{field} must be a number greater than 0")
    if not out.is_finite() or out <= 0:
        raise _bad(field, f"{field} must be a number greater than 0")
    return out


def one_of(value, field: str, allowed: Iterable[str], required: bool = True, lower: bool = False) -> Optional[str]:
    if is_blank(value):
        if required:
            raise _bad(field, f"{field} is required")
        return None
    out = str(value).strip()
    if lower:
        out = out.lower()
    allowed = tuple(allowed)
    if out not in allowed:
        raise _bad(field, f"{field} must be one of: {', '.join(allowed)}")
    return out


def bounded_text(value, field: str, min_len: int = 0, max_len: int = 255, required: bool = False,
                 pattern: re.Pattern | None = None, pattern_msg: str | None = None) -> Optional[str]:
    if is_blank(value):
        if required:
            raise _bad(field, f"{field} is required")
        return None
    if not isinstance(value, (str, int)):
        raise _bad(field, f"{field} must be a string")
    out = sanitize_text(str(value))
    if len(out) < min_len or len(out) > max_len:
        if min_len:
            raise _bad(field, f"{field} must be between {min_len} and {max_len} characters")
        raise _bad(field, f"{field} cannot exceed {max_len} characters")
    if pattern is not None and not pattern.match(out):
        raise _bad(field, pattern_msg or f"{field} has an invalid format")
    return out


def email(value, field: str = "email", required: bool = True) -> Optional[str]:
    out = bounded_text(value, field, max_len=100, required=required)
    if out is None:
        return None
    out = out.lower()
    if not EMAIL_RE.match(out):
        raise _bad(field, f"{field} must be a valid email address")
    return out


def tri_state(value, field: str) -> Optional[bool]:
    """
    Explicit true/false or "not specified" (None). Accepts JSON booleans and
    the strings "true"/"false"; null, "" and a missing key mean unset.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise _bad(field, f"{field} must be a boolean")

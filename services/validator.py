"""
Field Validator - semantic checks for partial contact updates.

Only keys present in the update are checked. An empty string always passes
(it clears the field). Errors from every field are collected so a form can
highlight all problems in one round trip.

Dispatch is keyed on ``FieldKind``; the table is checked against the enum at
import time so a new kind cannot silently skip validation.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from schemas.contact_schema import (
    MALAYSIAN_STATES,
    STATE_ALIASES,
    FieldKind,
    get_column_by_key,
)


@dataclass
class FieldResult:
    """Outcome of validating one value."""
    valid: bool
    value: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: str) -> "FieldResult":
        return cls(True, value=value)

    @classmethod
    def fail(cls, error: str) -> "FieldResult":
        return cls(False, error=error)


@dataclass
class ValidationResult:
    """Outcome of validating a partial update."""
    valid: bool
    errors: List[str] = field(default_factory=list)
    cleaned: Dict[str, str] = field(default_factory=dict)
    field_errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "cleaned": dict(self.cleaned),
            "fieldErrors": dict(self.field_errors),
        }


_POSTCODE_RE = re.compile(r"^\d{5}$", re.ASCII)
_PHONE_STRIP_RE = re.compile(r"[\s\-().]")
_PHONE_INTL_RE = re.compile(r"^(\+?60)\d{9,11}$", re.ASCII)
_PHONE_LOCAL_RE = re.compile(r"^0\d\d{7,9}$", re.ASCII)
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_URL_RE = re.compile(
    r"^(https?://)?([a-z0-9]([a-z0-9-]*[a-z0-9])?\.)+[a-z]{2,}(:\d+)?(/\S*)?$",
    re.IGNORECASE,
)
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)
_DMY_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$", re.ASCII)

PHONE_FORMATS = "+60xxxxxxxxx, 60xxxxxxxxx, 01xxxxxxxxx, 0x-xxxxxxxx"

_STATES_LOWER = {state.lower(): state for state in MALAYSIAN_STATES}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


# =============================================================================
# FIELD VALIDATORS
# =============================================================================

def validate_postal_code(value: Any) -> FieldResult:
    cleaned = _text(value)
    if not _POSTCODE_RE.match(cleaned):
        return FieldResult.fail(f'Postcode must be exactly 5 digits. Got: "{cleaned}"')
    return FieldResult.ok(cleaned)


def validate_state(value: Any) -> FieldResult:
    """Canonical state name, matched case-insensitively or through an alias."""
    cleaned = _text(value)
    lowered = cleaned.lower()

    if lowered in _STATES_LOWER:
        return FieldResult.ok(_STATES_LOWER[lowered])

    alias = STATE_ALIASES.get(lowered)
    if alias:
        return FieldResult.ok(alias)

    return FieldResult.fail(
        f'"{cleaned}" is not a valid Malaysian state. '
        f"Valid states: {', '.join(MALAYSIAN_STATES)}"
    )


def validate_phone(value: Any) -> FieldResult:
    raw = _text(value)
    cleaned = _PHONE_STRIP_RE.sub("", raw)
    if _PHONE_INTL_RE.match(cleaned) or _PHONE_LOCAL_RE.match(cleaned):
        return FieldResult.ok(cleaned)
    return FieldResult.fail(
        f'Invalid phone number: "{raw}". Accepted formats: {PHONE_FORMATS}'
    )


def validate_email(value: Any) -> FieldResult:
    cleaned = _text(value).lower()
    if not _EMAIL_RE.match(cleaned):
        return FieldResult.fail(f'Invalid email address: "{_text(value)}"')
    return FieldResult.ok(cleaned)


def validate_url(value: Any) -> FieldResult:
    cleaned = _text(value)
    if not _URL_RE.match(cleaned):
        return FieldResult.fail(f'Invalid website URL: "{cleaned}"')
    return FieldResult.ok(cleaned)


def validate_date(value: Any) -> FieldResult:
    """
    Accept YYYY-MM-DD as-is or DD/MM/YYYY converted to YYYY-MM-DD.

    Both shapes must also be real calendar dates.
    """
    cleaned = _text(value)

    if _ISO_DATE_RE.match(cleaned):
        try:
            datetime.strptime(cleaned, "%Y-%m-%d")
        except ValueError:
            return FieldResult.fail(f'Invalid date: "{cleaned}"')
        return FieldResult.ok(cleaned)

    match = _DMY_DATE_RE.match(cleaned)
    if match:
        day, month, year = match.groups()
        try:
            parsed = datetime(int(year), int(month), int(day))
        except ValueError:
            return FieldResult.fail(f'Invalid date: "{cleaned}"')
        return FieldResult.ok(parsed.strftime("%Y-%m-%d"))

    return FieldResult.fail(
        f'Invalid date format: "{cleaned}". Use YYYY-MM-DD or DD/MM/YYYY'
    )


def _validate_coordinate(value: Any, name: str, bound: float) -> FieldResult:
    cleaned = _text(value)
    try:
        number = float(cleaned)
    except ValueError:
        return FieldResult.fail(f'{name} must be a number. Got: "{cleaned}"')
    if not math.isfinite(number):
        return FieldResult.fail(f'{name} must be a finite number. Got: "{cleaned}"')
    if number < -bound or number > bound:
        return FieldResult.fail(
            f'{name} must be between -{bound:g} and {bound:g}. Got: "{cleaned}"'
        )
    return FieldResult.ok(cleaned)


def validate_longitude(value: Any) -> FieldResult:
    return _validate_coordinate(value, "Longitude", 180)


def validate_latitude(value: Any) -> FieldResult:
    return _validate_coordinate(value, "Latitude", 90)


def _pass_through(value: Any) -> FieldResult:
    return FieldResult.ok(_text(value))


FIELD_VALIDATORS: Dict[FieldKind, Callable[[Any], FieldResult]] = {
    FieldKind.TEXT: _pass_through,
    FieldKind.POSTCODE: validate_postal_code,
    FieldKind.STATE: validate_state,
    FieldKind.PHONE: validate_phone,
    FieldKind.EMAIL: validate_email,
    FieldKind.URL: validate_url,
    FieldKind.DATE: validate_date,
    FieldKind.LONGITUDE: validate_longitude,
    FieldKind.LATITUDE: validate_latitude,
}

_missing_kinds = set(FieldKind) - set(FIELD_VALIDATORS)
if _missing_kinds:
    raise RuntimeError(
        f"No validator registered for field kinds: {sorted(k.value for k in _missing_kinds)}"
    )


# =============================================================================
# RECORD VALIDATION
# =============================================================================

def validate_field(key: str, value: Any) -> FieldResult:
    """Validate one value for a field key; unknown keys pass through trimmed."""
    cleaned = _text(value)
    if not cleaned:
        return FieldResult.ok("")

    col = get_column_by_key(key)
    if col is None:
        return FieldResult.ok(cleaned)

    result = FIELD_VALIDATORS[col.kind](cleaned)
    if not result.valid:
        result.error = f"{col.label}: {result.error}"
    return result


def validate_contact(data: Dict[str, Any]) -> ValidationResult:
    """
    Validate a partial update.

    The input is never mutated. ``cleaned`` holds the normalized value for
    every key that passed; keys that failed are left out.
    """
    result = ValidationResult(valid=True)

    for key, value in data.items():
        outcome = validate_field(key, value)
        if outcome.valid:
            result.cleaned[key] = outcome.value
        else:
            result.errors.append(outcome.error)
            result.field_errors[key] = outcome.error

    result.valid = not result.errors
    return result

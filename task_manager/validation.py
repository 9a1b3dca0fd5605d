"""Request payload validation.

These checks run before anything reaches the store. Each field of a payload
is either absent (its key is not in the mapping), present but unusable, or
present and valid. Creation requires ``title``, ``description`` and
``dueDate``; an update checks only the fields it carries.

Text fields are returned as received: surrounding whitespace is considered
for the emptiness check but never stripped from the stored value.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from dateutil import parser as date_parser

from task_manager.models import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, TaskStatus, as_utc

FIELD_ORDER = ("title", "description", "status", "dueDate")
REQUIRED_FIELDS = ("title", "description", "dueDate")
TEXT_LIMITS = {"title": TITLE_MAX_LENGTH, "description": DESCRIPTION_MAX_LENGTH}
STATUS_VALUES = tuple(status.value for status in TaskStatus)

# Strings shaped like an ISO date must be valid ISO-8601; other layouts go to dateutil.
ISO_DATE_PREFIX = re.compile(r"^[+-]?\d{4}-\d{2}")


class ViolationKind(str, Enum):
    MISSING_FIELD = "missing_field"
    EMPTY_FIELD = "empty_field"
    TOO_LONG = "too_long"
    INVALID_ENUM = "invalid_enum"
    INVALID_DATE = "invalid_date"
    TYPE_MISMATCH = "type_mismatch"


@dataclass(frozen=True)
class Violation:
    field: str
    kind: ViolationKind
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Either the normalized field values or the violations found."""

    values: dict[str, Any] = field(default_factory=dict)
    violations: list[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations


def parse_instant(value: Any) -> datetime | None:
    """Parse ``value`` into an aware UTC datetime, or return None.

    Accepts datetime objects, numbers taken as milliseconds since the epoch,
    ISO-8601 strings (a bare date is midnight UTC) and the other common
    layouts such as ``2025/11/15``, ``11/15/2025``, ``Nov 15, 2025`` or
    RFC 1123. Strings without an offset are read as UTC.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return as_utc(datetime.fromisoformat(text))
        except ValueError:
            if ISO_DATE_PREFIX.match(text):
                return None
        try:
            return as_utc(date_parser.parse(text))
        except (ValueError, OverflowError):
            return None
    return None


def text_length(value: str) -> int:
    """Length in UTF-16 code units, so astral characters such as emoji count twice."""
    return len(value.encode("utf-16-le")) // 2


def _check_text(name: str, value: Any) -> Violation | None:
    if not isinstance(value, str):
        return Violation(name, ViolationKind.TYPE_MISMATCH, f"{name} must be a string")
    if not value.strip():
        return Violation(name, ViolationKind.EMPTY_FIELD, f"{name} cannot be empty")
    limit = TEXT_LIMITS[name]
    # Length is measured on the raw value, before trimming.
    if text_length(value) > limit:
        return Violation(name, ViolationKind.TOO_LONG, f"{name} cannot exceed {limit} characters")
    return None


def _check_fields(present: Mapping[str, Any]) -> tuple[dict[str, Any], list[Violation]]:
    values: dict[str, Any] = {}
    violations: list[Violation] = []

    for name in FIELD_ORDER:
        if name not in present:
            continue
        value = present[name]

        if name in TEXT_LIMITS:
            violation = _check_text(name, value)
            if violation is None:
                values[name] = value
            else:
                violations.append(violation)
        elif name == "status":
            if isinstance(value, str) and value in STATUS_VALUES:
                values[name] = value
            else:
                violations.append(
                    Violation(
                        name,
                        ViolationKind.INVALID_ENUM,
                        "status must be pending, in-progress, or completed",
                    )
                )
        else:
            instant = parse_instant(value)
            if instant is None:
                violations.append(
                    Violation(name, ViolationKind.INVALID_DATE, "invalid date format for dueDate")
                )
            else:
                values[name] = instant

    return values, violations


def _is_missing(payload: Mapping[str, Any], name: str) -> bool:
    # Falsy scalars (null, "", 0, false) count as missing.
    value = payload.get(name)
    return value is None or (isinstance(value, (str, int, float)) and not value)


def validate_for_create(payload: Mapping[str, Any]) -> ValidationResult:
    """Validate a full task payload for creation.

    ``status`` defaults to ``pending`` when omitted (or null).
    """
    violations = [
        Violation(name, ViolationKind.MISSING_FIELD, f"{name} is required")
        for name in REQUIRED_FIELDS
        if _is_missing(payload, name)
    ]
    missing = {violation.field for violation in violations}
    present = {
        name: payload[name]
        for name in FIELD_ORDER
        if name in payload and name not in missing and not (name == "status" and payload[name] is None)
    }

    values, field_violations = _check_fields(present)
    violations.extend(field_violations)
    if violations:
        return ValidationResult(violations=violations)

    values.setdefault("status", TaskStatus.PENDING.value)
    return ValidationResult(values=values)


def validate_for_update(payload: Mapping[str, Any]) -> ValidationResult:
    """Validate a partial task payload.

    Only the fields present in ``payload`` are checked and returned; an empty
    payload is valid. Unknown keys, and the store-assigned ``_id``/``id``/
    ``createdAt``, are dropped.
    """
    present = {name: payload[name] for name in FIELD_ORDER if name in payload}
    values, violations = _check_fields(present)
    if violations:
        return ValidationResult(violations=violations)
    return ValidationResult(values=values)

"""Stage validator - required-field and format rules evaluated against the draft"""

import math
import re
from datetime import date
from typing import Any, Mapping, Optional

from onboarding_gateway.domain.models import (
    FieldKind,
    FieldRule,
    RegistrationDraft,
    StageDescriptor,
    ValidationResult,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Error codes surfaced per field
REQUIRED = "required"
INVALID_EMAIL = "invalid_email"
INVALID_CHOICE = "invalid_choice"
INVALID_NUMBER = "invalid_number"
OUT_OF_RANGE = "out_of_range"
INVALID_DATE = "invalid_date"
TOO_SHORT = "too_short"
MUST_ACCEPT = "must_accept"
INVALID_BOOLEAN = "invalid_boolean"
INVALID_VALUE = "invalid_value"
FILE_REQUIRED = "file_required"


def is_scalar(value: Any) -> bool:
    """Form values are plain strings, numbers, booleans or None; never containers"""
    return value is None or isinstance(value, (str, int, float, bool))


def is_blank(value: Any) -> bool:
    """A value is missing when absent, None, or an empty string after trimming"""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def parse_number(value: Any) -> Optional[float]:
    """Parse a numeric form value; returns None when it is not a number"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            parsed = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            parsed = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    # NaN and infinities are not form numbers and are not valid JSON
    return parsed if math.isfinite(parsed) else None


def _check_rule(rule: FieldRule, values: Mapping[str, Any]) -> Optional[str]:
    value = values.get(rule.name)
    if not is_scalar(value):
        return INVALID_VALUE

    required = rule.required
    if rule.required_when is not None:
        other, expected = rule.required_when
        actual = values.get(other)
        # Booleans compare by identity
        triggered = actual is expected if isinstance(expected, bool) else actual == expected
        required = required or triggered

    if rule.kind == FieldKind.CONSENT:
        # Consents count only when explicitly true
        return None if value is True else MUST_ACCEPT

    if rule.kind == FieldKind.BOOLEAN:
        if value is None:
            return REQUIRED if required else None
        return None if isinstance(value, bool) else INVALID_BOOLEAN

    if is_blank(value):
        return REQUIRED if required else None

    if isinstance(value, float) and not math.isfinite(value):
        return INVALID_NUMBER

    text = value.strip() if isinstance(value, str) else str(value)

    if rule.kind == FieldKind.EMAIL and not EMAIL_PATTERN.match(text):
        return INVALID_EMAIL

    if rule.kind == FieldKind.CHOICE and text not in rule.choices:
        return INVALID_CHOICE

    if rule.kind == FieldKind.NUMBER:
        number = parse_number(value)
        if number is None:
            return INVALID_NUMBER
        if rule.minimum is not None:
            below = number <= rule.minimum if rule.exclusive_minimum else number < rule.minimum
            if below:
                return OUT_OF_RANGE

    if rule.kind == FieldKind.DATE:
        try:
            date.fromisoformat(text)
        except ValueError:
            return INVALID_DATE

    if rule.min_length is not None and len(text) < rule.min_length:
        return TOO_SHORT

    return None


def validate_stage(stage: StageDescriptor, draft: RegistrationDraft) -> ValidationResult:
    """
    Evaluate a stage's field rules and file slots against the current draft.

    Never raises: every problem becomes a per-field error code so the user
    can fix the field in place and retry.
    """
    values = draft.section(stage.section)
    result = ValidationResult(stage=stage.name)

    for rule in stage.fields:
        error = _check_rule(rule, values)
        if error:
            result.errors[rule.name] = error

    for slot in stage.files:
        attachment = draft.attachments.get(slot.name)
        if slot.required and (attachment is None or attachment.is_empty):
            result.errors[slot.name] = FILE_REQUIRED

    return result

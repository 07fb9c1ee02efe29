"""Validation for raw lead submissions.

Every check here is pure. ``validate_submission`` runs them in a fixed order and
stops at the first failure, so a response only ever carries one error message.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Mapping, Optional

from leadcapture.services.forms import EMAIL_FIELD, EMAIL_MAX_LENGTH, HONEYPOT_FIELD, LeadForm, first_present

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_TRUE_STRINGS = frozenset({"true", "1", "on", "yes"})

EMAIL_MIN_LENGTH = 6

INVALID_EMAIL = "Email non valida"
CONSENT_REQUIRED = "Consenso privacy richiesto"


class ValidationStatus(Enum):
    VALID = "valid"
    INVALID = "invalid"
    SPAM = "spam"


@dataclass(frozen=True)
class ValidationResult:
    status: ValidationStatus
    field: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status is ValidationStatus.VALID


VALID = ValidationResult(ValidationStatus.VALID)
SPAM = ValidationResult(ValidationStatus.SPAM, field=HONEYPOT_FIELD)


def invalid(field: str, error: str) -> ValidationResult:
    return ValidationResult(ValidationStatus.INVALID, field=field, error=error)


def validate_email(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    email = value.strip().lower()
    if len(email) < EMAIL_MIN_LENGTH or len(email) > EMAIL_MAX_LENGTH:
        return False
    return bool(_EMAIL_PATTERN.match(email))


def validate_required_string(name: str, value: Any, min_length: int, max_length: int) -> Optional[str]:
    """Return an error naming the field, or None when the trimmed length is within bounds."""
    if not isinstance(value, str) or not value.strip():
        return f"{name} obbligatorio"
    length = len(value.strip())
    if length < min_length or length > max_length:
        return f"{name} deve contenere tra {min_length} e {max_length} caratteri"
    return None


def coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def validate_enum(value: Any, allowed: Collection[str]) -> bool:
    return isinstance(value, str) and value in allowed


def honeypot_tripped(value: Any) -> bool:
    """Strings trip it when non-blank after trimming; lists are checked item by item."""
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple)):
        return any(honeypot_tripped(item) for item in value)
    return bool(value)


def validate_submission(raw: Mapping[str, Any], form: LeadForm) -> ValidationResult:
    if honeypot_tripped(raw.get(HONEYPOT_FIELD)):
        return SPAM

    if not validate_email(raw.get(EMAIL_FIELD)):
        return invalid(EMAIL_FIELD, INVALID_EMAIL)

    if not coerce_boolean(first_present(raw, form.consent_fields)):
        return invalid(form.consent_fields[0], CONSENT_REQUIRED)

    for rule in form.required_strings:
        error = validate_required_string(
            rule.label, first_present(raw, rule.keys), rule.min_length, rule.max_length
        )
        if error:
            return invalid(rule.field, error)

    for rule in form.enums:
        if not validate_enum(first_present(raw, rule.keys), rule.options):
            return invalid(rule.field, rule.error)

    return VALID

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from leadcapture.services.forms import (
    EMAIL_FIELD,
    EMAIL_MAX_LENGTH,
    FONTE_MAX_LENGTH,
    MESSAGGIO_MAX_LENGTH,
    NOME_MAX_LENGTH,
    LeadForm,
    first_present,
)

DEFAULT_SOURCE = "atoms"


def clean_text(value: Any, max_length: int) -> str:
    """Trim, then cut to ``max_length``. Missing values become an empty string."""
    if value is None:
        return ""
    return str(value).strip()[:max_length]


def optional_text(value: Any, max_length: int) -> Optional[str]:
    return clean_text(value, max_length) or None


def normalize_email(email: Any) -> str:
    return clean_text(email, EMAIL_MAX_LENGTH).lower()


def display_name(first_name: Any, last_name: Any) -> Optional[str]:
    parts = [clean_text(first_name, NOME_MAX_LENGTH), clean_text(last_name, NOME_MAX_LENGTH)]
    return optional_text(" ".join(part for part in parts if part), NOME_MAX_LENGTH)


def normalize_lead(
    raw: Mapping[str, Any],
    form: LeadForm,
    legacy_columns: bool = True,
    default_source: str = DEFAULT_SOURCE,
) -> Dict[str, Any]:
    """Map an already validated submission onto the row written to the store.

    Consent is always persisted as True: submissions without it never get here.
    """
    row: Dict[str, Any] = {EMAIL_FIELD: normalize_email(raw.get(EMAIL_FIELD))}

    for column in form.columns:
        row[column.name] = optional_text(first_present(raw, column.sources), column.max_length)

    row[form.consent_column] = True
    row["fonte"] = clean_text(raw.get("fonte"), FONTE_MAX_LENGTH) or default_source[:FONTE_MAX_LENGTH]

    if legacy_columns and form.legacy_name_sources:
        row["nome"] = display_name(*(raw.get(key) for key in form.legacy_name_sources))
    if legacy_columns and form.legacy_message_sources:
        row["messaggio"] = optional_text(
            first_present(raw, form.legacy_message_sources), MESSAGGIO_MAX_LENGTH
        )

    return row

"""Lead form profiles: which fields a form revision collects and where they land."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

HONEYPOT_FIELD = "company"
EMAIL_FIELD = "email"


@dataclass(frozen=True)
class StringRule:
    field: str
    label: str
    min_length: int
    max_length: int
    aliases: Tuple[str, ...] = ()

    @property
    def keys(self) -> Tuple[str, ...]:
        return (self.field,) + self.aliases


@dataclass(frozen=True)
class EnumRule:
    field: str
    error: str
    options: Tuple[str, ...]
    aliases: Tuple[str, ...] = ()

    @property
    def keys(self) -> Tuple[str, ...]:
        return (self.field,) + self.aliases


@dataclass(frozen=True)
class Column:
    """A persisted column fed by the first present input key."""
    name: str
    sources: Tuple[str, ...]
    max_length: int


@dataclass(frozen=True)
class LeadForm:
    name: str
    consent_fields: Tuple[str, ...]
    consent_column: str
    columns: Tuple[Column, ...]
    required_strings: Tuple[StringRule, ...] = ()
    enums: Tuple[EnumRule, ...] = ()
    # Older table shape: single display name and free-text message columns.
    legacy_name_sources: Tuple[str, ...] = ()
    legacy_message_sources: Tuple[str, ...] = ()


EMAIL_MAX_LENGTH = 254
NOME_MAX_LENGTH = 200
MESSAGGIO_MAX_LENGTH = 5000
FONTE_MAX_LENGTH = 50
UTM_MAX_LENGTH = 150

_PROVENANCE_COLUMNS = (
    Column("utm_source", ("utm_source",), UTM_MAX_LENGTH),
    Column("utm_medium", ("utm_medium",), UTM_MAX_LENGTH),
    Column("utm_campaign", ("utm_campaign",), UTM_MAX_LENGTH),
)


def pharmacy_form(roles: Sequence[str], revenue_brackets: Sequence[str]) -> LeadForm:
    return LeadForm(
        name="pharmacy",
        consent_fields=("privacy", "consenso_privacy"),
        consent_column="privacy",
        required_strings=(
            StringRule("firstName", "Nome", 1, 100),
            StringRule("lastName", "Cognome", 1, 100),
            StringRule("phone", "Telefono", 6, 30),
            StringRule("pharmacyName", "Nome farmacia", 2, 200),
            StringRule("challenge", "Sfida principale", 5, MESSAGGIO_MAX_LENGTH, aliases=("messaggio",)),
        ),
        enums=(
            EnumRule("role", "Ruolo non valido", tuple(roles)),
            EnumRule("revenue", "Fatturato non valido", tuple(revenue_brackets), aliases=("annualRevenue",)),
        ),
        columns=(
            Column("first_name", ("firstName",), 100),
            Column("last_name", ("lastName",), 100),
            Column("phone", ("phone",), 50),
            Column("pharmacy_name", ("pharmacyName",), 200),
            Column("role", ("role",), 100),
            Column("revenue", ("revenue", "annualRevenue"), 100),
            Column("challenge", ("challenge", "messaggio"), MESSAGGIO_MAX_LENGTH),
        ) + _PROVENANCE_COLUMNS,
        legacy_name_sources=("firstName", "lastName"),
        legacy_message_sources=("challenge", "messaggio"),
    )


def contact_form() -> LeadForm:
    return LeadForm(
        name="contact",
        consent_fields=("consenso_privacy", "privacy"),
        consent_column="consenso_privacy",
        columns=(
            Column("nome", ("nome",), NOME_MAX_LENGTH),
            Column("telefono", ("telefono", "phone"), 50),
            Column("messaggio", ("messaggio", "challenge"), MESSAGGIO_MAX_LENGTH),
        ) + _PROVENANCE_COLUMNS,
    )


def build_form(name: str, roles: Sequence[str] = (), revenue_brackets: Sequence[str] = ()) -> LeadForm:
    if name == "pharmacy":
        return pharmacy_form(roles, revenue_brackets)
    if name == "contact":
        return contact_form()
    raise ValueError(f"unknown lead form: {name}")


def first_present(raw: Mapping[str, Any], keys: Sequence[str]) -> Optional[Any]:
    """Value of the first key that is present and not None."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None

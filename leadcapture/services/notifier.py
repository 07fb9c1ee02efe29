"""
Lead notification email, sent through the Resend HTTP API.

The notification is best-effort: callers schedule it after the store write and a
failure here is logged, never returned to the client.
"""
from __future__ import annotations

import html
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import httpx

from leadcapture.core.config import Settings
from leadcapture.core.exceptions import NotifierError
from leadcapture.core.logging import get_structlog_logger, mask_email

logger = get_structlog_logger(__name__)

DEFAULT_PLACEHOLDER = "Non fornito"

# (label, row columns tried in order)
NOTIFICATION_FIELDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Nome", ("nome",)),
    ("Email", ("email",)),
    ("Telefono", ("phone", "telefono")),
    ("Farmacia", ("pharmacy_name",)),
    ("Ruolo", ("role",)),
    ("Fatturato", ("revenue", "annual_revenue")),
    ("Sfida principale", ("challenge", "messaggio")),
)


class Notifier(Protocol):
    async def send_lead_notification(self, row: Mapping[str, Any]) -> None: ...


def _row_value(row: Mapping[str, Any], columns: Sequence[str]) -> Optional[str]:
    for column in columns:
        value = row.get(column)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def _lead_name(row: Mapping[str, Any]) -> Optional[str]:
    name = _row_value(row, ("nome",))
    if name:
        return name
    parts = [_row_value(row, (column,)) for column in ("first_name", "last_name")]
    return " ".join(part for part in parts if part) or None


def render_lead_notification(
    row: Mapping[str, Any],
    placeholder: str = DEFAULT_PLACEHOLDER,
    subject_prefix: str = "Nuovo lead",
) -> Tuple[str, str]:
    """Return ``(subject, html)`` for a persisted lead row."""
    name = _lead_name(row)
    rows_html: List[str] = []
    for label, columns in NOTIFICATION_FIELDS:
        value = name if label == "Nome" else _row_value(row, columns)
        rows_html.append(
            "<tr>"
            f'<td style="padding:4px 12px 4px 0;font-weight:bold">{html.escape(label)}</td>'
            f'<td style="padding:4px 0">{html.escape(value or placeholder)}</td>'
            "</tr>"
        )

    subject = f"{subject_prefix}: {name or row.get('email') or placeholder}"
    body = (
        '<div style="font-family:Arial,sans-serif">'
        f"<h2>{html.escape(subject_prefix)}</h2>"
        f"<table>{''.join(rows_html)}</table>"
        "</div>"
    )
    return subject, body


class ResendNotifier:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        sender: str,
        recipients: Sequence[str],
        api_url: str = "https://api.resend.com/emails",
        subject_prefix: str = "Nuovo lead",
        placeholder: str = DEFAULT_PLACEHOLDER,
        timeout_seconds: float = 10.0,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.sender = sender
        self.recipients = list(recipients)
        self.api_url = api_url
        self.subject_prefix = subject_prefix
        self.placeholder = placeholder
        self.timeout_seconds = timeout_seconds

    async def send_lead_notification(self, row: Mapping[str, Any]) -> None:
        subject, body = render_lead_notification(row, self.placeholder, self.subject_prefix)
        payload: Dict[str, Any] = {
            "from": self.sender,
            "to": self.recipients,
            "subject": subject,
            "html": body,
        }
        try:
            response = await self.http_client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotifierError(
                code="notify_rejected",
                details={"status_code": e.response.status_code, "body": e.response.text[:500]},
            ) from e
        except httpx.HTTPError as e:
            raise NotifierError(
                code="notify_unreachable",
                details={"error": str(e), "error_type": type(e).__name__},
            ) from e

        message_id = None
        try:
            message_id = response.json().get("id")
        except ValueError:
            pass
        logger.info("notification.sent", lead=mask_email(row.get("email")), message_id=message_id)


def build_resend_notifier(settings: Settings, http_client: httpx.AsyncClient) -> ResendNotifier:
    return ResendNotifier(
        http_client,
        api_key=settings.resend_api_key or "",
        sender=settings.notify_from,
        recipients=settings.notify_recipients(),
        api_url=settings.resend_api_url,
        subject_prefix=settings.notify_subject_prefix,
        placeholder=settings.notify_placeholder,
        timeout_seconds=settings.notify_timeout_seconds,
    )

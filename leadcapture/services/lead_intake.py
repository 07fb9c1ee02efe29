# leadcapture/services/lead_intake.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from leadcapture.core.exceptions import BaseAPIException, NotifierError, UnexpectedError
from leadcapture.core.logging import get_structlog_logger, mask_email
from leadcapture.services.background import BackgroundTaskRegistry
from leadcapture.services.forms import LeadForm
from leadcapture.services.lead_store import LeadStore
from leadcapture.services.normalization import DEFAULT_SOURCE, normalize_lead
from leadcapture.services.notifier import Notifier
from leadcapture.services.validation import ValidationResult, ValidationStatus, validate_submission

logger = get_structlog_logger(__name__)


@dataclass(frozen=True)
class IntakeResult:
    validation: ValidationResult
    row: Optional[Dict[str, Any]] = None

    @property
    def accepted(self) -> bool:
        return self.validation.status is not ValidationStatus.INVALID

    @property
    def persisted(self) -> bool:
        return self.row is not None


class LeadIntake:
    """Validate, normalize, store, then schedule the notification for one submission.

    Store failures propagate as StoreError. Notification failures never do.
    """

    def __init__(
        self,
        form: LeadForm,
        store: LeadStore,
        tasks: BackgroundTaskRegistry,
        notifier: Optional[Notifier] = None,
        legacy_columns: bool = True,
        default_source: str = DEFAULT_SOURCE,
    ):
        self.form = form
        self.store = store
        self.tasks = tasks
        self.notifier = notifier
        self.legacy_columns = legacy_columns
        self.default_source = default_source

    async def submit(self, raw: Mapping[str, Any]) -> IntakeResult:
        validation = validate_submission(raw, self.form)

        if validation.status is ValidationStatus.SPAM:
            logger.info("lead.honeypot_dropped", form=self.form.name)
            return IntakeResult(validation)

        if validation.status is ValidationStatus.INVALID:
            logger.info("lead.rejected", form=self.form.name, field=validation.field, reason=validation.error)
            return IntakeResult(validation)

        row = normalize_lead(raw, self.form, self.legacy_columns, self.default_source)
        try:
            await self.store.save(row)
        except BaseAPIException:
            raise
        except Exception as e:
            # API exception handlers run inside the CORS layer; the catch-all does not.
            logger.error("lead.store_failed", form=self.form.name, error_type=type(e).__name__, exc_info=True)
            raise UnexpectedError(
                code="store_unexpected",
                details={"error_type": type(e).__name__, "error": str(e)},
            ) from e
        logger.info("lead.stored", form=self.form.name, lead=mask_email(row["email"]))

        if self.notifier is not None:
            self.tasks.spawn(self._notify(row), name=f"notify:{mask_email(row['email'])}")

        return IntakeResult(validation, row=row)

    async def _notify(self, row: Mapping[str, Any]) -> None:
        try:
            await self.notifier.send_lead_notification(row)
        except NotifierError as e:
            logger.error(
                "notification.failed",
                lead=mask_email(row.get("email")),
                code=e.code,
                details=e.details,
            )

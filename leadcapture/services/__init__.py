# leadcapture/services/__init__.py
"""
Lead intake services: validation, normalization, storage and notification.
"""

from leadcapture.services.background import BackgroundTaskRegistry
from leadcapture.services.lead_intake import IntakeResult, LeadIntake
from leadcapture.services.lead_store import SupabaseLeadStore, connect_supabase_store
from leadcapture.services.normalization import normalize_lead
from leadcapture.services.notifier import ResendNotifier, render_lead_notification
from leadcapture.services.validation import ValidationResult, ValidationStatus, validate_submission

__all__ = [
    "BackgroundTaskRegistry",
    "IntakeResult",
    "LeadIntake",
    "SupabaseLeadStore",
    "connect_supabase_store",
    "normalize_lead",
    "ResendNotifier",
    "render_lead_notification",
    "ValidationResult",
    "ValidationStatus",
    "validate_submission",
]

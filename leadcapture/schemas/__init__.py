# leadcapture/schemas/__init__.py
"""
Pydantic response schemas.
"""

from leadcapture.schemas.health import HealthResponse, ServiceInfo, StoreDiagnostic
from leadcapture.schemas.lead import LeadAccepted, LeadError

__all__ = [
    "HealthResponse",
    "LeadAccepted",
    "LeadError",
    "ServiceInfo",
    "StoreDiagnostic",
]

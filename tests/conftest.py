import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")

from typing import Any, Dict, List, Mapping, Optional

import pytest
from fastapi.testclient import TestClient

from leadcapture.core.config import Settings
from leadcapture.core.exceptions import NotifierError, StoreError
from leadcapture.main import create_app


class InMemoryLeadStore:
    """Stand-in for the Supabase table: upserts by conflict key, or appends."""

    def __init__(self, conflict_key: Optional[str] = "email"):
        self.conflict_key = conflict_key
        self.rows: List[Dict[str, Any]] = []
        self.fail_with: Optional[StoreError] = None

    async def save(self, row: Mapping[str, Any]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        if self.conflict_key:
            self.rows = [r for r in self.rows if r[self.conflict_key] != row[self.conflict_key]]
        self.rows.append(dict(row))

    async def ping(self) -> Dict[str, Any]:
        if self.fail_with is not None:
            raise self.fail_with
        return {"rows": min(len(self.rows), 1)}


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_lead_notification(self, row: Mapping[str, Any]) -> None:
        if self.fail:
            raise NotifierError(code="notify_rejected", details={"status_code": 500})
        self.sent.append(dict(row))


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "testing",
        "supabase_url": "https://test-project.supabase.co",
        "supabase_service_role_key": "test-service-role-key",
        "allowed_origins": "https://www.farmacia-example.it",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


VALID_LEAD = {
    "email": "a@b.com",
    "privacy": True,
    "firstName": "Jo",
    "lastName": "Do",
    "phone": "123456",
    "pharmacyName": "Far",
    "role": "Titolare",
    "revenue": "Meno di €500.000",
    "challenge": "test problem text",
}


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> InMemoryLeadStore:
    return InMemoryLeadStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def app(settings, store, notifier):
    return create_app(settings, store=store, notifier=notifier)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client

import pytest
from pydantic import ValidationError

from leadcapture import __main__ as entrypoint
from leadcapture.core.config import Settings, get_settings

from conftest import make_settings


def test_defaults():
    settings = make_settings()
    assert settings.leads_table == "leads"
    assert settings.conflict_key == "email"
    assert settings.max_body_bytes == 200 * 1024
    assert settings.lead_form == "pharmacy"
    assert "Titolare" in settings.roles()
    assert "Meno di €500.000" in settings.revenue_brackets()


def test_empty_conflict_key_means_insert():
    assert make_settings(store_conflict_key=" ").conflict_key is None


def test_missing_store_credentials_is_fatal(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_entrypoint_exits_on_missing_credentials(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    served = []
    monkeypatch.setattr(entrypoint.uvicorn, "run", lambda *args, **kwargs: served.append(args))

    get_settings.cache_clear()
    try:
        with pytest.raises(SystemExit) as exc_info:
            entrypoint.main()
    finally:
        get_settings.cache_clear()

    assert exc_info.value.code == 1
    assert served == []


def test_blank_store_credentials_rejected():
    with pytest.raises(ValidationError):
        make_settings(supabase_service_role_key="  ")


def test_notifications_need_api_key_and_recipient():
    with pytest.raises(ValidationError):
        make_settings(notify_enabled=True, notify_to="sales@example.it")
    with pytest.raises(ValidationError):
        make_settings(notify_enabled=True, resend_api_key="re_test")

    settings = make_settings(
        notify_enabled=True, resend_api_key="re_test", notify_to="a@example.it, b@example.it"
    )
    assert settings.notify_recipients() == ["a@example.it", "b@example.it"]


def test_unknown_lead_form_rejected():
    with pytest.raises(ValidationError):
        make_settings(lead_form="survey")

"""Settings loaded from PAWSHARE_ environment variables."""

import pytest
from pydantic import ValidationError

from pawshare.config import DEFAULT_BASE_URL, Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("BASE_URL", "SUPABASE_URL", "SUPABASE_ANON_KEY", "REALTIME_URL", "UNREAD_INSERT_DEBOUNCE"):
        monkeypatch.delenv(f"PAWSHARE_{name}", raising=False)


def test_defaults():
    settings = Settings()
    assert settings.base_url == DEFAULT_BASE_URL
    assert settings.unread_insert_debounce == 0.3
    assert settings.unread_update_debounce == 0.5
    assert settings.directory_refresh_debounce == 0.5
    assert settings.mark_read_delay == 1.0
    assert settings.toast_dismiss_after == 5.0
    assert settings.resolved_realtime_url == settings.supabase_url


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("PAWSHARE_SUPABASE_URL", "https://db.example.test/")
    monkeypatch.setenv("PAWSHARE_SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("PAWSHARE_UNREAD_INSERT_DEBOUNCE", "0.1")

    settings = Settings()

    assert settings.supabase_anon_key.get_secret_value() == "anon"
    assert settings.unread_insert_debounce == 0.1
    assert settings.resolved_realtime_url == "https://db.example.test"


def test_realtime_url_override(monkeypatch):
    monkeypatch.setenv("PAWSHARE_REALTIME_URL", "https://relay.example.test")
    assert Settings().resolved_realtime_url == "https://relay.example.test"


def test_rejects_non_positive_debounce(monkeypatch):
    monkeypatch.setenv("PAWSHARE_UNREAD_INSERT_DEBOUNCE", "0")
    with pytest.raises(ValidationError):
        Settings()

from __future__ import annotations

import pytest

from notes_backend.config import Settings


def test_settings_development_allows_placeholders():
    # Development should stay frictionless: placeholder values are allowed.
    s = Settings.model_validate({"environment": "development"})
    assert any("SESSION_SECRET" in w for w in s.security_warnings())


def test_settings_production_requires_secret_and_explicit_cors():
    with pytest.raises(Exception) as excinfo:
        Settings.model_validate({"environment": "production"})

    msg = str(excinfo.value)
    assert "SESSION_SECRET" in msg
    assert "CORS_ALLOW_ORIGINS" in msg


def test_settings_production_accepts_configured_values():
    s = Settings.model_validate(
        {
            "environment": "production",
            "database_url": "postgresql+psycopg://u:p@localhost:5432/notes",
            "session_secret": "strong-session-secret",
            "CORS_ORIGINS": "https://a.example.com, https://b.example.com",
        }
    )
    assert s.cors_origins_list() == ["https://a.example.com", "https://b.example.com"]
    assert s.security_warnings() == []


def test_item_concurrency_is_at_least_one():
    assert Settings.model_validate({"changes_item_concurrency": 0}).item_concurrency() == 1
    assert Settings.model_validate({"changes_item_concurrency": 8}).item_concurrency() == 8

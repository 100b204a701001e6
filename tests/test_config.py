"""Tests for environment-based settings."""

import os

import pydantic
import pytest
from settleit.config import Settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Run without SETTLEIT_* variables or a stray .env file."""
    for name in list(os.environ):
        if name.startswith("SETTLEIT_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def test_defaults_without_environment():
    settings = Settings()
    assert settings.royalty_timezone == "Europe/Moscow"
    assert settings.royalty_cutoff_hour == 18
    assert settings.workers == 8
    assert settings.world_currency == "EUR"
    assert settings.reuse_skipped_sources is True
    assert settings.db_path is None


def test_values_from_environment(monkeypatch):
    monkeypatch.setenv("SETTLEIT_ROYALTY_TIMEZONE", "UTC")
    monkeypatch.setenv("SETTLEIT_ROYALTY_CUTOFF_HOUR", "6")
    monkeypatch.setenv("SETTLEIT_WORKERS", "2")
    monkeypatch.setenv("SETTLEIT_WORLD_CURRENCY", "usd")
    monkeypatch.setenv("SETTLEIT_REUSE_SKIPPED_SOURCES", "no")
    monkeypatch.setenv("SETTLEIT_REDIS_URL", "redis://localhost:6379/0")

    settings = Settings()
    assert settings.royalty_timezone == "UTC"
    assert settings.royalty_cutoff_hour == 6
    assert settings.workers == 2
    assert settings.world_currency == "USD"
    assert settings.reuse_skipped_sources is False
    assert settings.redis_url == "redis://localhost:6379/0"


def test_env_file(tmp_path):
    (tmp_path / ".env").write_text("SETTLEIT_FINANCIER_EMAIL=tax@settleit.test\n")
    assert Settings().financier_email == "tax@settleit.test"


def test_empty_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("SETTLEIT_SMTP_HOST", "")
    monkeypatch.setenv("SETTLEIT_WORKERS", "")

    settings = Settings()
    assert settings.smtp_host is None
    assert settings.workers == 8


def test_keyword_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("SETTLEIT_WORKERS", "2")
    assert Settings(workers=4).workers == 4


def test_settings_are_frozen():
    settings = Settings()
    with pytest.raises(pydantic.ValidationError):
        settings.workers = 3


@pytest.mark.parametrize(
    "name, value",
    [
        ("SETTLEIT_ROYALTY_CUTOFF_HOUR", "evening"),
        ("SETTLEIT_ROYALTY_CUTOFF_HOUR", "24"),
        ("SETTLEIT_ROYALTY_TIMEZONE", "Mars/Olympus"),
        ("SETTLEIT_WORKERS", "0"),
        ("SETTLEIT_REUSE_SKIPPED_SOURCES", "maybe"),
        ("SETTLEIT_WORLD_CURRENCY", "EURO"),
    ],
)
def test_invalid_values_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(pydantic.ValidationError):
        Settings()

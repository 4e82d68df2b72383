"""
Helios — Settings Tests
=========================
"""

import pytest
from pydantic import ValidationError

from helios.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.session_name == "helios_session"
    assert settings.test_database_url == "sqlite+aiosqlite:///:memory:"
    assert settings.cors_origins_list == ["*"]


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("HELIOS_SECRET", "from-env")
    monkeypatch.setenv("SESSION_NAME", "sid")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.helios_secret == "from-env"
    assert settings.session_name == "sid"
    assert settings.log_level == "DEBUG"


def test_cors_origins_list():
    settings = Settings(cors_origins=" http://a , http://b,, ")

    assert settings.cors_origins_list == ["http://a", "http://b"]


def test_invalid_log_level():
    with pytest.raises(ValidationError):
        Settings(log_level="LOUD")


def test_session_max_age_lower_bound():
    with pytest.raises(ValidationError):
        Settings(session_max_age=10)


@pytest.mark.parametrize(
    "secret, name, message",
    [
        ("", "sid", "HELIOS_SECRET"),
        ("s3cret", "", "SESSION_NAME"),
    ],
)
def test_validate_required_for_production(secret, name, message):
    settings = Settings(helios_secret=secret, session_name=name)

    with pytest.raises(ValueError, match=message):
        settings.validate_required_for_production()


def test_validate_required_for_production_passes():
    Settings(helios_secret="s3cret", session_name="sid").validate_required_for_production()

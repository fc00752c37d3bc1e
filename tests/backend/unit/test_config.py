import logging

from pokerroom.backend.config import configure_logging, load_settings


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("POKERROOM_DATABASE_URL", "postgresql://local")
    monkeypatch.setenv("POKERROOM_HOST", "localhost")
    monkeypatch.setenv("POKERROOM_PORT", "9000")
    monkeypatch.setenv("POKERROOM_POLL_INTERVAL", "2.5")
    monkeypatch.setenv("POKERROOM_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.database_url == "postgresql://local"
    assert settings.host == "localhost"
    assert settings.port == 9000
    assert settings.poll_interval == 2.5
    assert settings.log_level == "DEBUG"


def test_load_settings_applies_defaults(monkeypatch) -> None:
    monkeypatch.delenv("POKERROOM_DATABASE_URL", raising=False)
    monkeypatch.delenv("POKERROOM_HOST", raising=False)
    monkeypatch.delenv("POKERROOM_PORT", raising=False)
    monkeypatch.delenv("POKERROOM_POLL_INTERVAL", raising=False)
    monkeypatch.delenv("POKERROOM_LOG_LEVEL", raising=False)

    settings = load_settings()

    assert settings.database_url is None
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.poll_interval == 5.0
    assert settings.log_level == "INFO"


def test_load_settings_treats_empty_database_url_as_missing(monkeypatch) -> None:
    monkeypatch.setenv("POKERROOM_DATABASE_URL", "")

    assert load_settings().database_url is None


def test_configure_logging_accepts_unknown_level(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging("nonsense")

    assert calls[0]["level"] == logging.INFO

import pytest

from cronhooks.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "PORT",
        "CRONHOOKS_PORT",
        "CRONHOOKS_DB_PATH",
        "CRONHOOKS_TICK_INTERVAL",
        "CRONHOOKS_TICK_TOLERANCE",
        "CRONHOOKS_SCHEDULER_ENABLED",
        "CRONHOOKS_MAX_CONCURRENT_DISPATCHES",
        "CRONHOOKS_API_TOKEN",
        "CRONHOOKS_CORS_ALLOW_ORIGINS",
        "CRONHOOKS_ENABLE_DOCS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = Settings()

    assert settings.server_port == 8000
    assert settings.tick_interval_seconds == 60.0
    assert settings.tick_tolerance_seconds == 5.0
    assert settings.scheduler_enabled is True
    assert settings.auth_enabled is False
    assert settings.cors_allow_origins == ["*"]
    assert settings.database_path.name == "cronhooks.db"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("CRONHOOKS_DB_PATH", str(tmp_path / "custom.db"))
    monkeypatch.setenv("CRONHOOKS_TICK_INTERVAL", "30")
    monkeypatch.setenv("CRONHOOKS_MAX_CONCURRENT_DISPATCHES", "4")
    monkeypatch.setenv("CRONHOOKS_API_TOKEN", "token")

    settings = Settings()

    assert settings.database_path == tmp_path / "custom.db"
    assert settings.tick_interval_seconds == 30.0
    assert settings.max_concurrent_dispatches == 4
    assert settings.auth_enabled is True


def test_unparseable_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("CRONHOOKS_TICK_TOLERANCE", "soon")
    monkeypatch.setenv("CRONHOOKS_MAX_CONCURRENT_DISPATCHES", "many")

    settings = Settings()

    assert settings.tick_tolerance_seconds == 5.0
    assert settings.max_concurrent_dispatches == 16


@pytest.mark.parametrize("raw, expected", [("0", False), ("false", False), ("off", False), ("1", True), ("yes", True)])
def test_scheduler_flag(monkeypatch, raw, expected):
    monkeypatch.setenv("CRONHOOKS_SCHEDULER_ENABLED", raw)

    assert Settings().scheduler_enabled is expected


def test_platform_port_wins(monkeypatch):
    monkeypatch.setenv("CRONHOOKS_PORT", "9000")
    assert Settings().server_port == 9000

    monkeypatch.setenv("PORT", "7000")
    assert Settings().server_port == 7000


def test_cors_origins_are_split(monkeypatch):
    monkeypatch.setenv("CRONHOOKS_CORS_ALLOW_ORIGINS", "https://a.example, https://b.example,")

    assert Settings().cors_allow_origins == ["https://a.example", "https://b.example"]


def test_docs_can_be_disabled(monkeypatch):
    monkeypatch.setenv("CRONHOOKS_ENABLE_DOCS", "false")

    assert Settings().resolved_docs_url is None


def test_get_settings_is_cached():
    assert get_settings() is get_settings()

import pytest

from repairdesk.config import ConfigError, load_config

ENV_VARS = (
    "BOT_TOKEN", "APP_ID", "DATABASE_URL", "DB_USER", "DB_PASS", "DB_HOST", "DB_PORT", "DB_NAME",
    "PAYMENT_DELAY_SECONDS", "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_missing_token_halts_startup():
    with pytest.raises(ConfigError):
        load_config()


def test_defaults(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    config = load_config()
    assert config.APP_ID == "default-app-id"
    assert config.PAYMENT_DELAY_SECONDS == 3.0
    assert config.DATABASE_URL.startswith("sqlite+aiosqlite://")


def test_postgres_url(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    monkeypatch.setenv("DB_HOST", "db")
    config = load_config()
    assert config.DATABASE_URL == "postgresql+asyncpg://postgres:postgres@db:5432/repair_desk"
    assert "postgres:postgres" not in config.describe()


def test_database_url_override(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    assert load_config().DATABASE_URL == "sqlite+aiosqlite:///:memory:"


@pytest.mark.parametrize("name,value", [
    ("PAYMENT_DELAY_SECONDS", "soon"),
    ("PAYMENT_DELAY_SECONDS", "-1"),
    ("APP_ID", "a/b"),
])
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        load_config()

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


class ConfigError(ValueError):
    """Raised when the process cannot start with the given environment."""


@dataclass
class Config:
    # Bot Token (REQUIRED)
    BOT_TOKEN: str

    # Namespace for every tenant path: artifacts/{APP_ID}/users/...
    APP_ID: str = "default-app-id"

    # Database Configuration
    DB_USER: str = "postgres"
    DB_PASS: str = "postgres"
    DB_HOST: Optional[str] = None
    DB_PORT: str = "5432"
    DB_NAME: str = "repair_desk"
    DATABASE_URL_OVERRIDE: Optional[str] = None

    # Mock payment processor delay for the subscription gate
    PAYMENT_DELAY_SECONDS: float = 3.0

    LOG_LEVEL: str = "INFO"

    @property
    def DATABASE_URL(self) -> str:
        # Prefer DATABASE_URL env var if set
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE

        # Build PostgreSQL URL only when a host is configured
        if self.DB_HOST:
            return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

        return "sqlite+aiosqlite:///repair_desk.db"

    def describe(self) -> str:
        """Log-safe summary, credentials stripped"""
        url = self.DATABASE_URL
        database = url.split("@")[1] if "@" in url else url
        return f"app={self.APP_ID} database={database} payment_delay={self.PAYMENT_DELAY_SECONDS}s"


def load_config(env_file: Optional[str] = None) -> Config:
    """
    Read configuration from the environment (and .env if present).

    Raises ConfigError for a missing token or malformed numbers, which
    must halt startup.
    """
    load_dotenv(env_file)

    token = os.getenv("BOT_TOKEN")
    if not token:
        raise ConfigError(
            "BOT_TOKEN is required! Set it in .env file.\n"
            "Get token from @BotFather on Telegram."
        )

    delay_raw = os.getenv("PAYMENT_DELAY_SECONDS", "3")
    try:
        delay = float(delay_raw)
    except ValueError:
        raise ConfigError(f"PAYMENT_DELAY_SECONDS must be a number, got {delay_raw!r}")
    if delay < 0:
        raise ConfigError("PAYMENT_DELAY_SECONDS cannot be negative")

    config = Config(
        BOT_TOKEN=token,
        APP_ID=os.getenv("APP_ID", "default-app-id"),
        DB_USER=os.getenv("DB_USER", "postgres"),
        DB_PASS=os.getenv("DB_PASS", "postgres"),
        DB_HOST=os.getenv("DB_HOST"),
        DB_PORT=os.getenv("DB_PORT", "5432"),
        DB_NAME=os.getenv("DB_NAME", "repair_desk"),
        DATABASE_URL_OVERRIDE=os.getenv("DATABASE_URL"),
        PAYMENT_DELAY_SECONDS=delay,
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

    if "/" in config.APP_ID or not config.APP_ID:
        raise ConfigError("APP_ID must be a non-empty value without '/'")

    logging.info(f"Configuration loaded: {config.describe()}")
    return config

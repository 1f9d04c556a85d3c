import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# -----------------------------
# Настройки приложения
# -----------------------------
TOKEN_TTL_SECONDS = 60 * 60


class ConfigError(RuntimeError):
    pass


class Settings(BaseModel):
    """Конфигурация процесса. Собирается один раз при старте и передаётся явно."""

    database_url: str
    jwt_secret: str
    port: int = 8080
    host: str = "0.0.0.0"
    jwt_algorithm: str = "HS256"
    token_ttl_seconds: int = TOKEN_TTL_SECONDS
    bcrypt_rounds: int = 12
    log_level: str = "INFO"

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        load_dotenv(env_file)  # Загружаем переменные из .env файла

        database_url = os.getenv("DATABASE_URL") or _postgres_url_from_env()
        if not database_url:
            raise ConfigError("DATABASE_URL is not set")
        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            raise ConfigError("JWT_SECRET is not set")

        return cls(
            database_url=database_url,
            jwt_secret=jwt_secret,
            port=_int_from_env("PORT", 8080),
            host=os.getenv("HOST", "0.0.0.0"),
            bcrypt_rounds=_int_from_env("BCRYPT_ROUNDS", 12),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _postgres_url_from_env() -> Optional[str]:
    host = os.getenv("POSTGRES_HOST")
    if not host:
        return None
    port = os.getenv("POSTGRES_PORT", "5432")
    parts = {}
    for name in ("POSTGRES_DB", "POSTGRES_USER", "POSTGRES_PASSWORD"):
        value = os.getenv(name)
        if not value:
            raise ConfigError(f"{name} is not set (required together with POSTGRES_HOST)")
        parts[name] = value
    return (
        f"postgresql+psycopg2://{parts['POSTGRES_USER']}:{parts['POSTGRES_PASSWORD']}"
        f"@{host}:{port}/{parts['POSTGRES_DB']}"
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s - %(message)s",
        stream=sys.stdout,
    )
    for noisy in ("passlib", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

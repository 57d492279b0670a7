import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _database_url() -> str:
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    host = os.getenv("POSTGRES_HOST", "localhost")  # In Docker, this will be 'postgres'
    port = os.getenv("POSTGRES_PORT", "5433")
    name = os.getenv("POSTGRES_DB", "ecommerce")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}"


def _optional_decimal(name: str) -> Decimal | None:
    raw = os.getenv(name)
    return Decimal(raw) if raw else None


@dataclass(frozen=True)
class Settings:
    database_url: str
    sql_echo: bool
    redis_url: str | None
    inventory_timeout_seconds: float
    payment_timeout_seconds: float
    idempotency_ttl_seconds: int
    idempotency_lock_timeout_seconds: float
    payment_max_amount: Decimal | None
    order_rate_limit: str
    internal_api_key: str
    otlp_endpoint: str
    log_level: str


def load_settings() -> Settings:
    return Settings(
        database_url=_database_url(),
        sql_echo=os.getenv("SQL_ECHO", "false").lower() == "true",
        redis_url=os.getenv("REDIS_URL") or None,
        inventory_timeout_seconds=float(os.getenv("INVENTORY_TIMEOUT_SECONDS", "5")),
        payment_timeout_seconds=float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "30")),
        idempotency_ttl_seconds=int(os.getenv("IDEMPOTENCY_TTL_SECONDS", "86400")),
        idempotency_lock_timeout_seconds=float(os.getenv("IDEMPOTENCY_LOCK_TIMEOUT_SECONDS", "60")),
        payment_max_amount=_optional_decimal("PAYMENT_MAX_AMOUNT"),
        order_rate_limit=os.getenv("ORDER_RATE_LIMIT", "1000/minute"),
        internal_api_key=os.getenv("INTERNAL_API_KEY", ""),
        otlp_endpoint=os.getenv("OTLP_ENDPOINT", "http://localhost:4317"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process; tests build their own via load_settings()."""
    return load_settings()

import logging
from decimal import Decimal

from starlette.requests import Request

from shared.config.settings import load_settings
from shared.observability.setup import resolve_log_level
from shared.security import client_id_or_ip, verify_api_key

from tests.fakes import INTERNAL_API_KEY


def _request(headers=None, client=("10.0.0.7", 5555)):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in (
            "INVENTORY_TIMEOUT_SECONDS",
            "PAYMENT_TIMEOUT_SECONDS",
            "IDEMPOTENCY_TTL_SECONDS",
            "REDIS_URL",
            "PAYMENT_MAX_AMOUNT",
            "ORDER_RATE_LIMIT",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = load_settings()

        assert settings.inventory_timeout_seconds == 5.0
        assert settings.payment_timeout_seconds == 30.0
        assert settings.idempotency_ttl_seconds == 86400
        assert settings.redis_url is None
        assert settings.payment_max_amount is None
        assert settings.order_rate_limit == "1000/minute"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("INVENTORY_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("PAYMENT_MAX_AMOUNT", "999.99")
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")

        settings = load_settings()

        assert settings.inventory_timeout_seconds == 2.5
        assert settings.payment_max_amount == Decimal("999.99")
        assert settings.redis_url == "redis://cache:6379/0"

    def test_postgres_url_is_assembled_without_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("POSTGRES_HOST", "postgres")
        monkeypatch.setenv("POSTGRES_PORT", "5432")

        settings = load_settings()

        assert settings.database_url.startswith("postgresql+asyncpg://")
        assert "@postgres:5432/" in settings.database_url


class TestSecurity:

    def test_api_key_comparison(self):
        assert verify_api_key(INTERNAL_API_KEY) is True
        assert verify_api_key("wrong") is False
        assert verify_api_key("") is False

    def test_rate_limit_key_prefers_client_id(self):
        assert client_id_or_ip(_request({"X-Client-Id": "checkout-web"})) == "client:checkout-web"

    def test_rate_limit_key_falls_back_to_address(self):
        assert client_id_or_ip(_request()) == "ip:10.0.0.7"


class TestLogLevel:

    def test_log_level_setting_defaults_to_info(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        assert load_settings().log_level == "INFO"

    def test_log_level_names_resolve(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")

        assert resolve_log_level(load_settings().log_level) == logging.DEBUG
        assert resolve_log_level("warning") == logging.WARNING

    def test_unknown_log_level_falls_back_to_info(self):
        assert resolve_log_level("chatty") == logging.INFO
        assert resolve_log_level(None) == logging.INFO

"""
Tests for backend/portfolio_tracker/factory.py and config.py
"""

import json

import pytest

from portfolio_tracker.config import Settings
from portfolio_tracker.exceptions import KeyFormatError
from portfolio_tracker.factory import create_portfolio_service
from portfolio_tracker.services.portfolio_service import PortfolioService


def _settings(**overrides):
    values = {
        "coinbase_cdp_key_name": "",
        "coinbase_cdp_private_key": "",
        "coinbase_cdp_key_file": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_defaults(self):
        settings = _settings()
        assert settings.coinbase_api_host == "api.coinbase.com"
        assert settings.quote_currency == "USD"
        assert settings.anchor_currency == "BTC"
        assert settings.portfolio_cache_ttl == 300
        assert settings.refresh_deadline is None

    def test_private_key_newlines_converted(self):
        settings = _settings(coinbase_cdp_private_key="-----BEGIN-----\\nabc\\n-----END-----")
        assert settings.coinbase_cdp_private_key == "-----BEGIN-----\nabc\n-----END-----"

    def test_currencies_upper_cased(self):
        settings = _settings(quote_currency=" eur ", anchor_currency="eth")
        assert settings.quote_currency == "EUR"
        assert settings.anchor_currency == "ETH"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PORTFOLIO_CACHE_TTL", "60")
        monkeypatch.setenv("ANCHOR_CURRENCY", "sol")
        settings = Settings(_env_file=None)
        assert settings.portfolio_cache_ttl == 60
        assert settings.anchor_currency == "SOL"


class TestCreatePortfolioService:
    def test_from_settings(self, ec_private_key_pem):
        settings = _settings(
            coinbase_cdp_key_name="organizations/o/apiKeys/k",
            coinbase_cdp_private_key=ec_private_key_pem,
            anchor_currency="ETH",
            portfolio_cache_ttl=42,
            refresh_deadline=10,
        )

        service = create_portfolio_service(settings)

        assert isinstance(service, PortfolioService)
        assert service.anchor_currency == "ETH"
        assert service.cache.ttl_seconds == 42
        assert service.refresh_deadline == 10
        assert service.client.signer.key_name == "organizations/o/apiKeys/k"

    def test_explicit_credentials_win(self, ec_private_key_pem):
        service = create_portfolio_service(_settings(), key_name="explicit", private_key=ec_private_key_pem)
        assert service.client.signer.key_name == "explicit"

    def test_from_key_file(self, tmp_path, ec_private_key_pem):
        key_file = tmp_path / "cdp_api_key.json"
        key_file.write_text(json.dumps({"name": "from-file", "privateKey": ec_private_key_pem}))

        service = create_portfolio_service(_settings(coinbase_cdp_key_file=str(key_file)))

        assert service.client.signer.key_name == "from-file"

    def test_missing_credentials(self):
        with pytest.raises(KeyFormatError):
            create_portfolio_service(_settings())

    def test_bad_key_fails_fast(self):
        with pytest.raises(KeyFormatError):
            create_portfolio_service(_settings(coinbase_cdp_key_name="k", coinbase_cdp_private_key="garbage"))

"""
Shared test fixtures for the portfolio tracker tests.

Provides reusable fixtures for:
- A real EC P-256 key (generated per session, never used outside tests)
- Token signer with a frozen clock
- Coinbase clients backed by httpx.MockTransport
- Sample Coinbase v2 payload factories
"""

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from portfolio_tracker.coinbase_api.auth import TokenSigner
from portfolio_tracker.coinbase_api.client import CoinbaseClient

FROZEN_NOW = 1700000000
TEST_KEY_NAME = "organizations/test-org/apiKeys/test-key"


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def ec_private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_private_key_pem(ec_private_key) -> str:
    """SEC1 PEM, the format Coinbase hands out for CDP keys."""
    return ec_private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def signer(ec_private_key_pem):
    return TokenSigner(TEST_KEY_NAME, ec_private_key_pem, clock=lambda: FROZEN_NOW)


# ---------------------------------------------------------------------------
# Mock HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def make_client(signer):
    """Build a CoinbaseClient whose HTTP calls go to ``handler(request)``."""

    def _make(handler, with_signer=True, max_retries=3):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return CoinbaseClient(
            signer=signer if with_signer else None,
            http_client=http_client,
            max_retries=max_retries,
        )

    return _make


@pytest.fixture
def route_client(make_client):
    """
    CoinbaseClient served from a path -> response table.

    Values may be an httpx.Response, a JSON-able payload (served as 200),
    or a list of either (served in order, last one repeats). Every request
    is recorded on ``client.requests``.
    """

    def _make(routes):
        requests = []
        calls = {}

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            path = request.url.path
            if path not in routes:
                return httpx.Response(404, json={"errors": [{"id": "not_found"}]})

            entry = routes[path]
            if isinstance(entry, list):
                index = calls.get(path, 0)
                calls[path] = index + 1
                entry = entry[min(index, len(entry) - 1)]
            if isinstance(entry, httpx.Response):
                return httpx.Response(entry.status_code, content=entry.content, headers=entry.headers)
            return httpx.Response(200, json=entry)

        client = make_client(handler)
        client.requests = requests
        return client

    return _make


# ---------------------------------------------------------------------------
# Sample data factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_account():
    def _make(account_id, code, amount, formatted_apy=None, primary=False):
        currency = {"code": code, "name": code}
        if formatted_apy is not None:
            currency["rewards"] = {"apy": "0.01", "formatted_apy": formatted_apy, "label": "rewards"}
        return {
            "id": account_id,
            "name": f"{code} Wallet",
            "primary": primary,
            "type": "wallet",
            "currency": currency,
            "balance": {"amount": amount, "currency": code},
            "created_at": "2024-01-01T00:00:00Z",
            "updated_at": "2024-06-01T00:00:00Z",
        }

    return _make


@pytest.fixture
def make_transaction():
    def _make(txn_id, txn_type, native_amount, currency="USD"):
        return {
            "id": txn_id,
            "type": txn_type,
            "status": "completed",
            "amount": {"amount": "0.001", "currency": "BTC"},
            "native_amount": {"amount": native_amount, "currency": currency},
            "created_at": "2024-03-01T12:00:00Z",
        }

    return _make

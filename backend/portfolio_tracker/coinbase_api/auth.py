"""
Authentication utilities for the Coinbase API

Produces the short-lived CDP JWT attached to every authenticated request.
Tokens and key material are never written to the log.
"""

import base64
import binascii
import json
import logging
import secrets
import time
from typing import Callable, Optional, Tuple

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from portfolio_tracker.constants import (
    COINBASE_API_HOST,
    JWT_ALGORITHM,
    JWT_ISSUER,
    JWT_LIFETIME_SECONDS,
    JWT_NONCE_BYTES,
)
from portfolio_tracker.exceptions import KeyFormatError, SigningError

logger = logging.getLogger(__name__)


def load_cdp_credentials_from_file(file_path: str) -> Tuple[str, str]:
    """
    Load CDP credentials from JSON key file

    Args:
        file_path: Path to cdp_api_key.json file

    Returns:
        Tuple of (key_name, private_key)
    """
    with open(file_path, "r") as f:
        data = json.load(f)

    return data["name"], data["privateKey"]


def strip_pem_envelope(private_key: str) -> str:
    """Return the base64 body of a PEM key (or the input when it has no envelope)."""
    lines = private_key.replace("\\n", "\n").replace("\r", "").split("\n")
    return "".join(line.strip() for line in lines if line.strip() and not line.startswith("-----"))


def load_ec_private_key(private_key: str) -> ec.EllipticCurvePrivateKey:
    """
    Decode a CDP EC private key.

    Accepts a PEM string (SEC1 or PKCS#8) or the bare base64 DER body.

    Raises:
        KeyFormatError: key is not valid base64/DER, not EC, or not P-256
    """
    if not private_key or not private_key.strip():
        raise KeyFormatError("EC private key is empty")

    try:
        der = base64.b64decode(strip_pem_envelope(private_key), validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyFormatError("EC private key is not valid base64") from e

    try:
        key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError) as e:
        raise KeyFormatError(f"EC private key could not be loaded: {e}") from e

    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise KeyFormatError(f"Expected an EC private key, got {type(key).__name__}")
    if not isinstance(key.curve, ec.SECP256R1):
        raise KeyFormatError(f"Expected a P-256 key, got curve {key.curve.name}")

    return key


def generate_nonce() -> str:
    """Random hex nonce so identical requests within a second get distinct tokens."""
    return secrets.token_hex(JWT_NONCE_BYTES)


class TokenSigner:
    """
    Signs a CDP JWT scoped to one HTTP method and request path.

    The private key is parsed once at construction; each call to ``sign``
    builds fresh claims, a fresh nonce and a fresh signature.
    """

    def __init__(
        self,
        key_name: str,
        private_key: str,
        host: str = COINBASE_API_HOST,
        lifetime_seconds: int = JWT_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if not key_name:
            raise KeyFormatError("CDP key name is empty")
        self.key_name = key_name
        self.host = host
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock
        self._private_key = load_ec_private_key(private_key)

    def __repr__(self) -> str:
        return f"TokenSigner(key_name={self.key_name!r}, host={self.host!r})"

    def build_claims(self, request_method: str, request_path: str, host: Optional[str] = None) -> dict:
        """Claims for one request; query parameters are not part of the signed URI."""
        if not request_method:
            raise ValueError("request_method is required")
        if not request_path:
            raise ValueError("request_path is required")

        path_without_query = request_path.split("?")[0]
        current_time = int(self._clock())

        return {
            "sub": self.key_name,
            "iss": JWT_ISSUER,
            "nbf": current_time,
            "exp": current_time + self.lifetime_seconds,
            "uri": f"{request_method.upper()} {host or self.host}{path_without_query}",
        }

    def sign(self, request_method: str, request_path: str, host: Optional[str] = None) -> str:
        """
        Generate JWT token for a CDP API request

        Args:
            request_method: HTTP method (GET, POST, etc.)
            request_path: API endpoint path, optionally with a query string
            host: Host the request goes to; defaults to the configured host

        Returns:
            JWT token string
        """
        payload = self.build_claims(request_method, request_path, host)
        headers = {"kid": self.key_name, "nonce": generate_nonce(), "typ": "JWT"}

        try:
            token = jwt.encode(payload, self._private_key, algorithm=JWT_ALGORITHM, headers=headers)
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise SigningError(f"Failed to sign token for {payload['uri']}: {e}") from e

        logger.debug(f"Signed token for {payload['uri']}")
        return token

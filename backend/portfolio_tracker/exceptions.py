"""
Domain exceptions for the portfolio tracker.

Each error carries an HTTP-equivalent status code so a display layer can
map any failure to a single user-facing message.
"""

from typing import Optional


class AppError(Exception):
    """Base application error with an HTTP-equivalent status code."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class KeyFormatError(AppError):
    """EC private key cannot be decoded or is not a P-256 key."""

    def __init__(self, message: str = "Invalid EC private key"):
        super().__init__(message, status_code=500)


class SigningError(AppError):
    """Cryptographic failure while producing a token."""

    def __init__(self, message: str = "Failed to sign request token"):
        super().__init__(message, status_code=500)


class TransportError(AppError):
    """Coinbase could not be reached (DNS, connect, timeout, reset)."""

    def __init__(self, message: str = "Exchange service unavailable"):
        super().__init__(message, status_code=503)


class UpstreamError(AppError):
    """Coinbase answered with a non-2xx status."""

    def __init__(self, status: int, reason_phrase: str = "", body_excerpt: str = ""):
        self.status = status
        self.reason_phrase = reason_phrase
        self.body_excerpt = body_excerpt
        super().__init__(f"Coinbase API error {status} {reason_phrase}".rstrip(), status_code=502)


class DecodeError(AppError):
    """Response body does not match the expected shape."""

    def __init__(self, target_type: str, raw_body: str, detail: Optional[str] = None):
        self.target_type = target_type
        self.raw_body = raw_body
        message = f"Failed to decode response as {target_type}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, status_code=502)


class PriceUnavailableError(AppError):
    """Spot price missing or not numeric."""

    def __init__(self, base: str, quote: str, reason: str = "no numeric amount"):
        self.base = base
        self.quote = quote
        super().__init__(f"Spot price for {base}-{quote} unavailable: {reason}", status_code=502)


class InvestedAmountUnknown(AppError):
    """Net invested could not be determined for any account of a currency."""

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invested amount for {currency} is unknown", status_code=404)


class RefreshTimeoutError(AppError):
    """Portfolio refresh did not finish before its deadline."""

    def __init__(self, deadline: float):
        self.deadline = deadline
        super().__init__(f"Portfolio refresh exceeded {deadline}s deadline", status_code=504)

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from portfolio_tracker.constants import (
    ACCOUNTS_PAGE_LIMIT,
    COINBASE_API_HOST,
    DEFAULT_ANCHOR_CURRENCY,
    DEFAULT_QUOTE_CURRENCY,
    MAX_TRANSACTION_PAGES,
    PORTFOLIO_CACHE_TTL,
    REQUEST_TIMEOUT,
    TRANSACTION_PAGE_DELAY,
    TRANSACTIONS_PAGE_LIMIT,
)


class Settings(BaseSettings):
    # Coinbase CDP API - EC private key method
    coinbase_cdp_key_file: str = ""  # Path to cdp_api_key.json file
    coinbase_cdp_key_name: str = ""  # API key name from CDP
    coinbase_cdp_private_key: str = ""  # EC private key from CDP

    @field_validator("coinbase_cdp_private_key")
    @classmethod
    def convert_newlines(cls, v: str) -> str:
        """Convert literal \\n to actual newlines in private key"""
        if v:
            return v.replace("\\n", "\n")
        return v

    coinbase_api_host: str = COINBASE_API_HOST
    request_timeout: float = REQUEST_TIMEOUT

    # Portfolio parameters
    quote_currency: str = DEFAULT_QUOTE_CURRENCY
    anchor_currency: str = DEFAULT_ANCHOR_CURRENCY
    portfolio_cache_ttl: float = PORTFOLIO_CACHE_TTL
    refresh_deadline: Optional[float] = None  # Seconds; None waits for every enrichment task

    @field_validator("quote_currency", "anchor_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()

    # Pagination
    accounts_page_limit: int = ACCOUNTS_PAGE_LIMIT
    transactions_page_limit: int = TRANSACTIONS_PAGE_LIMIT
    transaction_page_delay: float = TRANSACTION_PAGE_DELAY
    max_transaction_pages: int = MAX_TRANSACTION_PAGES

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()

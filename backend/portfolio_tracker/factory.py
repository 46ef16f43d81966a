"""
Portfolio Service Factory

Wires signer, HTTP client, cache and service together from Settings.
Credentials come from explicit arguments, else the settings values,
else the CDP key file named in the settings.
"""

import logging
from typing import Optional

from portfolio_tracker.cache import PortfolioCache
from portfolio_tracker.coinbase_api.auth import TokenSigner, load_cdp_credentials_from_file
from portfolio_tracker.coinbase_api.client import CoinbaseClient
from portfolio_tracker.config import Settings
from portfolio_tracker.config import settings as default_settings
from portfolio_tracker.exceptions import KeyFormatError
from portfolio_tracker.services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)


def create_portfolio_service(
    settings: Optional[Settings] = None,
    key_name: Optional[str] = None,
    private_key: Optional[str] = None,
) -> PortfolioService:
    """
    Build a PortfolioService ready for use.

    Raises:
        KeyFormatError: no usable CDP credentials were found
    """
    if settings is None:
        settings = default_settings

    if not (key_name and private_key):
        if settings.coinbase_cdp_key_name and settings.coinbase_cdp_private_key:
            key_name, private_key = settings.coinbase_cdp_key_name, settings.coinbase_cdp_private_key
            logger.info("Using CDP authentication (from settings)")
        elif settings.coinbase_cdp_key_file:
            key_name, private_key = load_cdp_credentials_from_file(settings.coinbase_cdp_key_file)
            logger.info(f"Using CDP authentication (loaded from {settings.coinbase_cdp_key_file})")
        else:
            raise KeyFormatError("No CDP credentials configured")
    else:
        logger.info("Using CDP authentication (explicit credentials)")

    signer = TokenSigner(key_name, private_key, host=settings.coinbase_api_host)
    client = CoinbaseClient(signer=signer, host=settings.coinbase_api_host, timeout=settings.request_timeout)
    cache = PortfolioCache(ttl_seconds=settings.portfolio_cache_ttl)

    return PortfolioService(
        client,
        cache=cache,
        quote_currency=settings.quote_currency,
        anchor_currency=settings.anchor_currency,
        accounts_page_limit=settings.accounts_page_limit,
        transactions_page_limit=settings.transactions_page_limit,
        transaction_page_delay=settings.transaction_page_delay,
        max_transaction_pages=settings.max_transaction_pages,
        refresh_deadline=settings.refresh_deadline,
    )

"""
Account listing for the Coinbase v2 API
"""

import logging
from typing import List

from portfolio_tracker.coinbase_api.client import CoinbaseClient
from portfolio_tracker.coinbase_api.models import Account, AccountsResponse
from portfolio_tracker.constants import ACCOUNTS_PAGE_LIMIT, ACCOUNTS_PATH, MAX_ACCOUNT_PAGES

logger = logging.getLogger(__name__)


async def get_accounts(
    client: CoinbaseClient,
    limit: int = ACCOUNTS_PAGE_LIMIT,
    max_pages: int = MAX_ACCOUNT_PAGES,
) -> List[Account]:
    """
    Get all accounts with pagination support.

    The first page is requested with a large ``limit`` so a normal wallet
    fits in one call; ``next_uri`` is followed when Coinbase paginates anyway.
    Failures propagate to the caller.
    """
    all_accounts: List[Account] = []
    path = ACCOUNTS_PATH
    params = {"limit": limit}
    page_count = 0

    while page_count < max_pages:
        result = await client.execute(path, AccountsResponse, params=params)
        all_accounts.extend(result.data)
        page_count += 1

        logger.debug(f"Fetched page {page_count}: {len(result.data)} accounts (total so far: {len(all_accounts)})")

        next_uri = result.pagination.next_uri if result.pagination else None
        if not next_uri or not result.data:
            break  # No more pages

        path, params = next_uri, None
    else:
        logger.warning(f"Hit max page limit ({max_pages}) when fetching accounts - some may be missing")

    logger.info(f"Fetched {len(all_accounts)} total accounts across {page_count} page(s)")
    return all_accounts

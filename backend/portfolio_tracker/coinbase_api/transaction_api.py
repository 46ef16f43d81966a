"""
Coinbase v2 transaction history.

Walks the cursor-paginated transactions feed of one account, either to
reduce it into a net invested figure (buys minus sells in the account's
native currency) or to return the raw transaction objects.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from portfolio_tracker.coinbase_api.client import CoinbaseClient
from portfolio_tracker.coinbase_api.models import Transaction, TransactionsResponse, parse_decimal
from portfolio_tracker.constants import (
    BUY_TYPE,
    INVESTED_UNKNOWN_STATUSES,
    MAX_TRANSACTION_PAGES,
    SELL_TYPE,
    TRANSACTION_PAGE_DELAY,
    TRANSACTIONS_PAGE_LIMIT,
    TRANSACTIONS_PATH,
)
from portfolio_tracker.exceptions import DecodeError, UpstreamError

logger = logging.getLogger(__name__)


def invested_delta(txn: Transaction) -> Decimal:
    """Signed contribution of one transaction to net invested."""
    if txn.type not in (BUY_TYPE, SELL_TYPE):
        return Decimal("0")

    raw_amount = txn.native_amount.amount if txn.native_amount else None
    amount = parse_decimal(raw_amount)
    if amount is None:
        logger.warning(f"Skipping {txn.type} transaction {txn.id}: native amount {raw_amount!r} is not numeric")
        return Decimal("0")

    return amount if txn.type == BUY_TYPE else -amount


async def sum_invested(
    client: CoinbaseClient,
    account_id: str,
    limit: int = TRANSACTIONS_PAGE_LIMIT,
    page_delay: float = TRANSACTION_PAGE_DELAY,
    max_pages: int = MAX_TRANSACTION_PAGES,
) -> Optional[Decimal]:
    """
    Net invested for one account: sum of buys minus sum of sells.

    Returns:
        The signed total, or None when Coinbase refuses the history
        (401/403/404), which means "unknown" and not zero.

    Raises:
        Any other executor error; the caller decides how much to abort.
    """
    path = TRANSACTIONS_PATH.format(account_id=account_id)
    params: Optional[Dict[str, Any]] = {"limit": limit}
    total = Decimal("0")
    page = 0

    while page < max_pages:
        try:
            result = await client.execute(path, TransactionsResponse, params=params)
        except UpstreamError as e:
            if e.status in INVESTED_UNKNOWN_STATUSES:
                logger.warning(f"Transactions for account {account_id} unavailable ({e.status}); invested unknown")
                return None
            raise

        for txn in result.data:
            total += invested_delta(txn)
        page += 1

        next_uri = result.pagination.next_uri if result.pagination else None
        if not next_uri:
            break

        # Rate limit between pages
        await asyncio.sleep(page_delay)
        path, params = next_uri, None
    else:
        logger.warning(f"Hit max page limit ({max_pages}) scanning account {account_id}; total may be partial")

    logger.debug(f"Account {account_id}: net invested {total} over {page} page(s)")
    return total


async def get_all_transactions(
    client: CoinbaseClient,
    account_id: str,
    limit: int = TRANSACTIONS_PAGE_LIMIT,
    page_delay: float = TRANSACTION_PAGE_DELAY,
    max_pages: int = MAX_TRANSACTION_PAGES,
) -> List[Dict[str, Any]]:
    """
    Raw transaction objects for one account, newest first, across all pages.
    """
    path = TRANSACTIONS_PATH.format(account_id=account_id)
    params: Optional[Dict[str, Any]] = {"limit": limit}
    transactions: List[Dict[str, Any]] = []

    for _ in range(max_pages):
        result = await client.execute(path, params=params)
        if not isinstance(result, dict):
            raise DecodeError("TransactionsResponse", str(result), "expected a JSON object")
        transactions.extend(result.get("data") or [])

        next_uri = (result.get("pagination") or {}).get("next_uri")
        if not next_uri:
            break

        await asyncio.sleep(page_delay)
        path, params = next_uri, None

    return transactions

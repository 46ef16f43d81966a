"""
Portfolio Service

Builds the per-currency portfolio view from Coinbase accounts:
list accounts, group by currency, enrich every group concurrently with a
spot price and the net invested amount, sort, and cache the result.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from portfolio_tracker.cache import PortfolioCache
from portfolio_tracker.coinbase_api.account_api import get_accounts
from portfolio_tracker.coinbase_api.client import CoinbaseClient
from portfolio_tracker.coinbase_api.models import Account
from portfolio_tracker.coinbase_api.price_api import get_spot_price
from portfolio_tracker.coinbase_api.transaction_api import get_all_transactions, sum_invested
from portfolio_tracker.constants import (
    ACCOUNTS_PAGE_LIMIT,
    APY_NOT_AVAILABLE,
    DEFAULT_ANCHOR_CURRENCY,
    DEFAULT_APY_VALUES,
    DEFAULT_QUOTE_CURRENCY,
    MAX_TRANSACTION_PAGES,
    TRANSACTION_PAGE_DELAY,
    TRANSACTIONS_PAGE_LIMIT,
)
from portfolio_tracker.exceptions import AppError, InvestedAmountUnknown, PriceUnavailableError, RefreshTimeoutError
from portfolio_tracker.services.models import PortfolioItem

logger = logging.getLogger(__name__)


def select_apy(accounts: Iterable[Account]) -> str:
    """First non-default formatted APY among the accounts, else N/A"""
    for account in accounts:
        rewards = account.currency.rewards
        if rewards is None:
            continue
        formatted = (rewards.formatted_apy or "").strip()
        if formatted not in DEFAULT_APY_VALUES:
            return formatted
    return APY_NOT_AVAILABLE


def group_accounts(accounts: Iterable[Account], anchor_currency: str, quote_currency: str = "") -> List[PortfolioItem]:
    """
    Fold accounts into one PortfolioItem per currency code.

    Groups keep the order in which their currency first appears. A group
    survives when its summed balance is positive or it is the anchor
    currency; a zero-balance anchor is synthesized when no account holds it.
    """
    groups: "OrderedDict[str, List[Account]]" = OrderedDict()
    for account in accounts:
        groups.setdefault(account.currency_code, []).append(account)

    anchor_currency = anchor_currency.upper()
    items = []
    for code, members in groups.items():
        balance = sum((a.balance_value for a in members), Decimal("0"))
        if balance <= 0 and code != anchor_currency:
            continue

        items.append(
            PortfolioItem(
                currency=code,
                balance=balance,
                apy=select_apy(members),
                translated_currency=quote_currency,
                account_ids=tuple(a.id for a in members),
            )
        )

    if anchor_currency not in groups:
        items.append(PortfolioItem(currency=anchor_currency, balance=Decimal("0"), translated_currency=quote_currency))

    return items


def sort_portfolio(items: List[PortfolioItem], anchor_currency: str) -> List[PortfolioItem]:
    """Anchor first, then by translated value descending (unpriced counts as zero)"""
    anchor_currency = anchor_currency.upper()
    return sorted(items, key=lambda item: (item.currency != anchor_currency, -item.sort_value))


class PortfolioService:
    """
    Aggregates Coinbase accounts into a sorted, priced portfolio.

    The cache is owned by the service instance (injected or created here),
    so separate services never share a snapshot.
    """

    def __init__(
        self,
        client: CoinbaseClient,
        cache: Optional[PortfolioCache] = None,
        quote_currency: str = DEFAULT_QUOTE_CURRENCY,
        anchor_currency: str = DEFAULT_ANCHOR_CURRENCY,
        accounts_page_limit: int = ACCOUNTS_PAGE_LIMIT,
        transactions_page_limit: int = TRANSACTIONS_PAGE_LIMIT,
        transaction_page_delay: float = TRANSACTION_PAGE_DELAY,
        max_transaction_pages: int = MAX_TRANSACTION_PAGES,
        refresh_deadline: Optional[float] = None,
    ):
        self.client = client
        self.cache = cache if cache is not None else PortfolioCache()
        self.quote_currency = quote_currency.upper()
        self.anchor_currency = anchor_currency.upper()
        self.accounts_page_limit = accounts_page_limit
        self.transactions_page_limit = transactions_page_limit
        self.transaction_page_delay = transaction_page_delay
        self.max_transaction_pages = max_transaction_pages
        self.refresh_deadline = refresh_deadline

    async def get_portfolio_items(
        self, force_refresh: bool = False, deadline: Optional[float] = None
    ) -> List[PortfolioItem]:
        """
        Return the portfolio, from cache when the snapshot is still fresh.

        Args:
            force_refresh: Skip the cache and fetch everything again
            deadline: Seconds allowed for the enrichment stage; defaults to
                ``refresh_deadline`` (None waits for every task)

        Raises:
            UpstreamError / TransportError / DecodeError: account listing failed
            RefreshTimeoutError: enrichment did not finish before the deadline

        The cache keeps its previous snapshot whenever a refresh fails.
        """
        if not force_refresh:
            snapshot = await self.cache.get()
            if snapshot is not None:
                logger.debug(f"Using cached portfolio ({len(snapshot.items)} items)")
                return snapshot.items

        started = time.monotonic()
        accounts = await get_accounts(self.client, limit=self.accounts_page_limit)
        items = group_accounts(accounts, self.anchor_currency, self.quote_currency)

        enriched = await self._enrich_all(items, deadline if deadline is not None else self.refresh_deadline)
        ordered = sort_portfolio(enriched, self.anchor_currency)

        snapshot = await self.cache.set(ordered)
        logger.info(
            f"Portfolio refreshed: {len(ordered)} currencies from {len(accounts)} accounts "
            f"in {time.monotonic() - started:.2f}s"
        )
        return snapshot.items

    async def _enrich_all(self, items: List[PortfolioItem], deadline: Optional[float]) -> List[PortfolioItem]:
        """Fan out one task per item and join them all; the deadline cancels stragglers"""
        gathered = asyncio.gather(*(self._enrich_item(item) for item in items))
        try:
            return list(await asyncio.wait_for(gathered, timeout=deadline))
        except asyncio.TimeoutError:
            logger.error(f"Portfolio enrichment exceeded {deadline}s deadline; in-flight scans cancelled")
            raise RefreshTimeoutError(deadline)

    async def _enrich_item(self, item: PortfolioItem) -> PortfolioItem:
        translated_value = None
        try:
            price = await get_spot_price(self.client, item.currency, self.quote_currency)
            translated_value = price * item.balance
        except PriceUnavailableError as e:
            logger.warning(f"No price for {item.currency}: {e.message}")
        except ValueError as e:
            logger.warning(f"No price for {item.currency!r}: {e}")

        invested = None
        try:
            invested = await self._resolve_invested(item)
        except InvestedAmountUnknown as e:
            logger.warning(e.message)

        return replace(item, translated_value=translated_value, invested=invested)

    async def _resolve_invested(self, item: PortfolioItem) -> Decimal:
        """
        Sum net invested over every account of the item, one account at a time.

        An account whose scan fails contributes nothing; when no account
        could be scanned at all the amount is unknown.
        """
        total = Decimal("0")
        scanned = 0

        for account_id in item.account_ids:
            try:
                invested = await sum_invested(
                    self.client,
                    account_id,
                    limit=self.transactions_page_limit,
                    page_delay=self.transaction_page_delay,
                    max_pages=self.max_transaction_pages,
                )
            except AppError as e:
                logger.warning(f"Invested scan failed for {item.currency} account {account_id}: {e.message}")
                continue

            if invested is None:
                continue

            total += invested
            scanned += 1

        if not scanned:
            raise InvestedAmountUnknown(item.currency)
        return total

    async def get_all_transactions(self, currency: str) -> List[Dict[str, Any]]:
        """
        Raw transactions of every account holding ``currency``.

        Always reads live data; the cached portfolio is neither used nor touched.
        """
        if not currency:
            raise ValueError("currency cannot be empty")

        code = currency.upper()
        accounts = await get_accounts(self.client, limit=self.accounts_page_limit)
        account_ids = [a.id for a in accounts if a.currency_code == code]
        if not account_ids:
            logger.info(f"No {code} accounts found")
            return []

        transactions: List[Dict[str, Any]] = []
        for account_id in account_ids:
            transactions.extend(
                await get_all_transactions(
                    self.client,
                    account_id,
                    limit=self.transactions_page_limit,
                    page_delay=self.transaction_page_delay,
                    max_pages=self.max_transaction_pages,
                )
            )

        logger.debug(f"Fetched {len(transactions)} {code} transactions across {len(account_ids)} account(s)")
        return transactions

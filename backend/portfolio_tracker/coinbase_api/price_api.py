"""
Spot price lookup (public, unauthenticated Coinbase v2 endpoint)
"""

import logging
from decimal import Decimal

from portfolio_tracker.coinbase_api.client import CoinbaseClient
from portfolio_tracker.coinbase_api.models import SpotPriceResponse, parse_decimal
from portfolio_tracker.constants import SPOT_PRICE_PATH
from portfolio_tracker.exceptions import AppError, PriceUnavailableError

logger = logging.getLogger(__name__)


async def get_spot_price(client: CoinbaseClient, base: str, quote: str) -> Decimal:
    """
    Return the spot conversion rate for ``base`` in ``quote``.

    Raises:
        ValueError: base or quote is empty
        PriceUnavailableError: the call failed or the amount is not numeric
    """
    if not base:
        raise ValueError("base currency cannot be empty")
    if not quote:
        raise ValueError("quote currency cannot be empty")

    base, quote = base.upper(), quote.upper()
    if base == quote:
        return Decimal("1")

    path = SPOT_PRICE_PATH.format(base=base, quote=quote)
    try:
        result = await client.execute(path, SpotPriceResponse, requires_auth=False)
    except AppError as e:
        raise PriceUnavailableError(base, quote, e.message) from e

    price = parse_decimal(result.data.amount)
    if price is None:
        raise PriceUnavailableError(base, quote, f"amount {result.data.amount!r} is not numeric")

    logger.debug(f"Spot price {base}-{quote}: {price}")
    return price

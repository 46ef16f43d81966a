"""Portfolio aggregation types"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Tuple

from portfolio_tracker.constants import APY_NOT_AVAILABLE


@dataclass(frozen=True)
class PortfolioItem:
    """
    One currency across every account that holds it.

    ``translated_value`` is None when the spot price could not be fetched;
    ``invested`` is None when no account history could be read.
    """

    currency: str
    balance: Decimal
    apy: str = APY_NOT_AVAILABLE
    translated_value: Optional[Decimal] = None
    translated_currency: str = ""
    invested: Optional[Decimal] = None
    account_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def sort_value(self) -> Decimal:
        return self.translated_value if self.translated_value is not None else Decimal("0")

    @property
    def profit(self) -> Optional[Decimal]:
        """Translated value minus net invested, when both are known"""
        if self.translated_value is None or self.invested is None:
            return None
        return self.translated_value - self.invested

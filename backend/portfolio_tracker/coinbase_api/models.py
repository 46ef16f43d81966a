"""Coinbase v2 response shapes (pydantic)"""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)


def parse_decimal(value: Optional[str]) -> Optional[Decimal]:
    """Parse an API amount string; None when it is not a finite number."""
    if value is None:
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


class CoinbaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class Money(CoinbaseModel):
    amount: str = "0"
    currency: str = ""


class RewardInfo(CoinbaseModel):
    apy: str = "0"
    formatted_apy: str = ""
    label: str = ""


class CurrencyInfo(CoinbaseModel):
    code: str
    name: str = ""
    type: str = ""
    exponent: int = 0
    asset_id: Optional[str] = None
    rewards: Optional[RewardInfo] = None


class Pagination(CoinbaseModel):
    ending_before: Optional[str] = None
    starting_after: Optional[str] = None
    limit: Optional[int] = None
    order: str = ""
    previous_uri: Optional[str] = None
    next_uri: Optional[str] = None


class Account(CoinbaseModel):
    id: str
    name: str = ""
    primary: bool = False
    type: str = ""
    currency: CurrencyInfo
    balance: Money = Money()
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    allow_deposits: bool = False
    allow_withdrawals: bool = False

    @field_validator("currency", mode="before")
    @classmethod
    def currency_from_code(cls, v):
        """Some account payloads carry the currency as a bare code string"""
        if isinstance(v, str):
            return {"code": v}
        return v

    @property
    def currency_code(self) -> str:
        return self.currency.code.upper()

    @property
    def balance_value(self) -> Decimal:
        value = parse_decimal(self.balance.amount)
        if value is None:
            logger.warning(f"Failed to parse balance '{self.balance.amount}' for {self.currency_code}")
            return Decimal("0")
        return value

    @property
    def has_balance(self) -> bool:
        return self.balance_value > 0


class AccountsResponse(CoinbaseModel):
    data: List[Account] = []
    pagination: Optional[Pagination] = None


class Transaction(CoinbaseModel):
    id: str = ""
    type: str = ""  # buy, sell, send, receive, trade, fiat_deposit, fiat_withdrawal, ...
    status: str = ""  # completed, pending, ...
    amount: Optional[Money] = None
    native_amount: Optional[Money] = None
    created_at: Optional[str] = None


class TransactionsResponse(CoinbaseModel):
    data: List[Transaction] = []
    pagination: Optional[Pagination] = None


class SpotPriceData(CoinbaseModel):
    amount: Optional[str] = None
    base: Optional[str] = None
    currency: Optional[str] = None


class SpotPriceResponse(CoinbaseModel):
    data: SpotPriceData

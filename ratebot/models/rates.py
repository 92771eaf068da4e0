"""Rate-related data models."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class Intent(str, Enum):
    """What the user wants to do with their currency."""

    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class RateQuote:
    """Best commercial rate on one side of the market."""

    rate: Decimal
    description: str  # bank name as shown by the source
    bank_id: str


@dataclass(frozen=True)
class BestRates:
    """Best buy and sell offers in a city."""

    buy: RateQuote
    sell: RateQuote


@dataclass(frozen=True)
class RateBundle:
    """One consolidated snapshot of reference, commercial and market rates."""

    reference_rate: Decimal
    best_buy: RateQuote
    best_sell: RateQuote
    market_quote: Decimal | None = None

    def quote_for(self, intent: Intent) -> RateQuote:
        """Best offer for the given intent."""
        return self.best_buy if intent is Intent.BUY else self.best_sell

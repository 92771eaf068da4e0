"""Interfaces and helpers shared by the rate sources."""

import re
from decimal import Decimal, InvalidOperation
from typing import Protocol

from ..errors import SourceError
from ..models import BestRates, BranchRecord


class IReferenceRateSource(Protocol):
    """Official reference rate."""

    async def fetch_reference(self) -> Decimal:
        ...


class IBestRateSource(Protocol):
    """Best commercial buy/sell offers in a city."""

    async def fetch_best_rates(self, city_code: str) -> BestRates:
        ...


class IMarketQuoteSource(Protocol):
    """Exchange market quote; None when there were no trades yet."""

    async def fetch_market_quote(self) -> Decimal | None:
        ...


class IBranchDirectory(Protocol):
    """Bank offices by region."""

    async def find_branches(self, region_id: str, bank_id: str) -> list[BranchRecord]:
        """Ordered list of offices of a bank in a region."""
        ...

    async def enrich(self, ids: list[str]) -> list[BranchRecord]:
        """Full records for the given office ids, in the same order."""
        ...


_SPACES = re.compile(r"[\s ]+")


def parse_decimal(raw: str | None) -> Decimal:
    """Parse '92,50' or '1 092.5' as a Decimal, keeping the source precision."""
    if raw is None:
        raise SourceError("Missing number")
    normalized = _SPACES.sub("", raw).replace(",", ".")
    try:
        value = Decimal(normalized)
    except InvalidOperation as e:
        raise SourceError(f"Invalid number: {raw!r}") from e
    if not value.is_finite() or value <= 0:
        raise SourceError(f"Invalid rate: {raw!r}")
    return value


def clean_string(raw: str | None) -> str:
    """Collapse whitespace runs left over from HTML markup."""
    if not raw:
        return ""
    return _SPACES.sub(" ", raw).strip()

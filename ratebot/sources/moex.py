"""Moscow Exchange ISS client: last USD/RUB trade."""

from decimal import Decimal

import httpx

from ..errors import SourceError
from ..logging_config import get_logger
from .base import parse_decimal

logger = get_logger(__name__)

QUOTE_URL = (
    "https://iss.moex.com/iss/engines/currency/markets/selt/boards/CETS"
    "/securities/USD000UTSTOM.json"
)
_PARAMS = {"iss.meta": "off", "iss.only": "marketdata", "marketdata.columns": "LAST"}


class MoexMarketQuote:
    """Reads the last trade price of USD000UTSTOM."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str = QUOTE_URL,
        timeout: float = 10.0,
    ):
        self._client = client
        self._url = url
        self._timeout = timeout

    async def fetch_market_quote(self) -> Decimal | None:
        try:
            response = await self._client.get(
                self._url, params=_PARAMS, timeout=self._timeout
            )
        except httpx.HTTPError as e:
            raise SourceError(f"Error loading moex.com quote: {e}") from e

        if response.status_code != 200:
            raise SourceError(f"Invalid status code: {response.status_code}")

        try:
            marketdata = response.json()["marketdata"]
            columns = marketdata["columns"]
            rows = marketdata["data"]
        except (ValueError, KeyError, TypeError) as e:
            raise SourceError(f"Unexpected moex.com response: {e}") from e

        if not rows or "LAST" not in columns:
            return None

        last = rows[0][columns.index("LAST")]
        if last is None:
            # No trades yet today
            return None
        return parse_decimal(str(last))

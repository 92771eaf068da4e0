"""cbr.ru client: official USD rate."""

import warnings
from decimal import Decimal

import httpx
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from ..errors import SourceError
from ..logging_config import get_logger
from .base import parse_decimal

logger = get_logger(__name__)

DAILY_URL = "https://www.cbr.ru/scripts/XML_daily.asp"
USD_VALUTE_ID = "R01235"


class CbrReferenceSource:
    """Reads the daily USD rate published by the Central Bank of Russia."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str = DAILY_URL,
        timeout: float = 10.0,
    ):
        self._client = client
        self._url = url
        self._timeout = timeout

    async def fetch_reference(self) -> Decimal:
        logger.debug("Retrieving Cbr USD rate %s", self._url)
        try:
            response = await self._client.get(self._url, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise SourceError(f"Error loading cbr.ru service ({self._url}): {e}") from e

        if response.status_code != 200:
            raise SourceError(f"Invalid status code: {response.status_code}")

        # html.parser lower-cases tag names, so <Valute ID=...> becomes "valute"
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
            soup = BeautifulSoup(response.text, "html.parser")
        valute = soup.find("valute", attrs={"id": USD_VALUTE_ID})
        value = valute.find("value") if valute else None
        if value is None:
            raise SourceError("USD rate not found in cbr.ru response")

        return parse_decimal(value.get_text())

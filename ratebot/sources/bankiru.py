"""banki.ru clients: best city rates, region list, bank offices."""

import re

import httpx
from bs4 import BeautifulSoup

from ..errors import SourceError
from ..logging_config import get_logger
from ..models import BestRates, BranchRecord, RateQuote
from .base import clean_string, parse_decimal

logger = get_logger(__name__)

BEST_RATES_URL = "https://www.banki.ru/products/currency/best_rates_summary/bank/usd/"
REGIONS_URL = (
    "https://www.banki.ru/bitrix/components/banks/universal.select.region/ajax.php"
    "?bankid=&baseUrl=%2Fproducts%2Fcurrency%2F&appendUrl="
    "&urlPattern=%2Fproducts%2Fcurrency%2Fcash%2Fusd%2F%25region_name%25%2F&type=city"
)
OFFICES_URL = "https://www.banki.ru/api/banks/offices/"
OBJECTS_URL = "https://www.banki.ru/api/banks/offices/objects/"

_AJAX_HEADERS = {"X-Requested-With": "XMLHttpRequest"}
_BANK_HREF = re.compile(r"/banks/bank/([^/]+)/?")

# Column 3 holds the cheapest offer to buy USD, column 4 the best to sell it
_BUY_CELL = "table.currency-table__table tbody tr td:nth-child(3)"
_SELL_CELL = "table.currency-table__table tbody tr td:nth-child(4)"


async def _get(client: httpx.AsyncClient, url: str, timeout: float, **kwargs) -> httpx.Response:
    logger.debug("Requesting %s", url)
    try:
        response = await client.get(url, timeout=timeout, **kwargs)
    except httpx.HTTPError as e:
        raise SourceError(f"Error loading banki.ru page ({url}): {e}") from e
    if response.status_code != 200:
        raise SourceError(f"Invalid status code: {response.status_code}")
    return response


def _json(response: httpx.Response):
    try:
        return response.json()
    except ValueError as e:
        raise SourceError(f"Invalid JSON from {response.url}") from e


class BankiruBestRates:
    """Parses the best-rate summary page of a city."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str = BEST_RATES_URL,
        timeout: float = 10.0,
    ):
        self._client = client
        self._url = url
        self._timeout = timeout

    async def fetch_best_rates(self, city_code: str) -> BestRates:
        url = f"{self._url}{city_code}/"
        response = await _get(self._client, url, self._timeout, headers=_AJAX_HEADERS)
        soup = BeautifulSoup(response.text, "html.parser")
        return BestRates(
            buy=self._parse_cell(soup, _BUY_CELL),
            sell=self._parse_cell(soup, _SELL_CELL),
        )

    @staticmethod
    def _parse_cell(soup: BeautifulSoup, selector: str) -> RateQuote:
        cell = soup.select_one(selector)
        if cell is None:
            raise SourceError(f"Rate cell not found: {selector}")

        rate = cell.select_one(".currency-table__rate__num")
        description = cell.select_one(".currency-table__rate__text")

        bank_id = cell.get("data-bank-id")
        if not bank_id:
            link = cell.find("a", href=_BANK_HREF)
            if link is not None:
                bank_id = _BANK_HREF.search(link["href"]).group(1)
        if not bank_id:
            raise SourceError(f"Bank id not found: {selector}")

        return RateQuote(
            rate=parse_decimal(rate.get_text() if rate else None),
            description=clean_string(description.get_text() if description else ""),
            bank_id=str(bank_id),
        )


class CityDirectory:
    """Lower-cased city names mapped to banki.ru region codes."""

    def __init__(self, cities: dict[str, str] | None = None):
        self._cities = {name.lower(): code for name, code in (cities or {}).items()}

    def __contains__(self, city: str) -> bool:
        return city.lower() in self._cities

    def __len__(self) -> int:
        return len(self._cities)

    def code_for(self, city: str) -> str | None:
        return self._cities.get(city.lower())

    @classmethod
    async def load(
        cls,
        client: httpx.AsyncClient,
        url: str = REGIONS_URL,
        timeout: float = 10.0,
    ) -> "CityDirectory":
        """Fetch the region list used by the currency pages."""
        response = await _get(client, url, timeout)
        data = _json(response)
        try:
            cities = {
                item["region_name"]: str(item["region_code"]) for item in data["data"]
            }
        except (KeyError, TypeError) as e:
            raise SourceError(f"Unexpected region list format: {e}") from e

        logger.info("Loaded %s cities", len(cities))
        return cls(cities)


class BankiruBranchDirectory:
    """Office search and office details."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        offices_url: str = OFFICES_URL,
        objects_url: str = OBJECTS_URL,
        timeout: float = 10.0,
    ):
        self._client = client
        self._offices_url = offices_url
        self._objects_url = objects_url
        self._timeout = timeout

    async def find_branches(self, region_id: str, bank_id: str) -> list[BranchRecord]:
        response = await _get(
            self._client,
            self._offices_url,
            self._timeout,
            params={"region_id": region_id, "bank_code": bank_id, "type": "office"},
            headers=_AJAX_HEADERS,
        )
        return self._parse_records(_json(response))

    async def enrich(self, ids: list[str]) -> list[BranchRecord]:
        if not ids:
            return []
        response = await _get(
            self._client,
            self._objects_url,
            self._timeout,
            params=[("id[]", object_id) for object_id in ids],
            headers=_AJAX_HEADERS,
        )
        records = {record.id: record for record in self._parse_records(_json(response))}
        # The service does not guarantee order; restore the requested one
        return [records[object_id] for object_id in ids if object_id in records]

    @staticmethod
    def _parse_records(data) -> list[BranchRecord]:
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise SourceError("Unexpected office list format")

        records = []
        for item in items:
            try:
                records.append(
                    BranchRecord(
                        id=str(item["id"]),
                        name=clean_string(item.get("name")),
                        address=clean_string(item.get("address")),
                        latitude=_coordinate(item.get("latitude")),
                        longitude=_coordinate(item.get("longitude")),
                        phone=clean_string(item.get("phone")) or None,
                    )
                )
            except (KeyError, TypeError) as e:
                raise SourceError(f"Malformed office record {item!r}") from e
        return records


def _coordinate(value) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None

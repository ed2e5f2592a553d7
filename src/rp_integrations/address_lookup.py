"""Address autocomplete (Nominatim) and US postal code lookup (Zippopotam).

Both are free public services with no key; results are cached in-process
with a bounded LRU so repeated keystrokes do not hit them again. Failures
return [] or None and are logged, never raised.
"""


import logging
from collections import OrderedDict
from dataclasses import dataclass

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3
MAX_RESULTS = 5
_MAX_CACHE_SIZE = 2_000


@dataclass(frozen=True)
class PostalPlace:
    city: str
    state: str
    country: str = "USA"


class AddressLookup:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport
        self._search_cache: OrderedDict[str, list[str]] = OrderedDict()
        self._postal_cache: OrderedDict[str, PostalPlace | None] = OrderedDict()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def search_address(self, query: str) -> list[str]:
        """Up to five display names for a free-text address query."""
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []
        key = query.lower()
        if key in self._search_cache:
            self._search_cache.move_to_end(key)
            return list(self._search_cache[key])

        data = await self._get_json(
            settings.NOMINATIM_URL,
            params={
                "format": "json",
                "q": query,
                "addressdetails": 1,
                "limit": MAX_RESULTS,
                "countrycodes": "us",
            },
        )
        if not isinstance(data, list):
            return []
        results = [
            str(item["display_name"])
            for item in data[:MAX_RESULTS]
            if isinstance(item, dict) and item.get("display_name")
        ]
        _cache_put(self._search_cache, key, results)
        return list(results)

    async def lookup_postal(self, code: str) -> PostalPlace | None:
        """City and state abbreviation for a 5-digit US ZIP code."""
        code = code.strip()
        if len(code) != 5 or not code.isdigit():
            return None
        if code in self._postal_cache:
            self._postal_cache.move_to_end(code)
            return self._postal_cache[code]

        data = await self._get_json(f"{settings.ZIPPOPOTAM_URL.rstrip('/')}/{code}")
        place = _parse_postal(data)
        if data is not None:
            # Unknown codes are cached too; transport failures are not.
            _cache_put(self._postal_cache, code, place)
        return place

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get_json(self, url: str, params: dict | None = None) -> object | None:
        try:
            async with httpx.AsyncClient(
                timeout=settings.LOOKUP_TIMEOUT_SECONDS,
                headers={
                    "User-Agent": settings.LOOKUP_USER_AGENT,
                    "Accept-Language": "en-US",
                },
                transport=self._transport,
            ) as client:
                resp = await client.get(url, params=params)
                if resp.status_code == httpx.codes.NOT_FOUND:
                    return {}
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as exc:
            logger.warning("Lookup request to %s failed: %s", url, exc)
            return None
        except ValueError as exc:
            logger.warning("Lookup response from %s was not JSON: %s", url, exc)
            return None


def _parse_postal(data: object) -> PostalPlace | None:
    if not isinstance(data, dict):
        return None
    places = data.get("places") or []
    if not places:
        return None
    first = places[0]
    return PostalPlace(
        city=str(first.get("place name", "")),
        state=str(first.get("state abbreviation", "")),
    )


def _cache_put(cache: OrderedDict, key: str, value: object) -> None:
    cache[key] = value
    cache.move_to_end(key)
    if len(cache) > _MAX_CACHE_SIZE:
        cache.popitem(last=False)


_lookup = AddressLookup()


def get_address_lookup() -> AddressLookup:
    return _lookup

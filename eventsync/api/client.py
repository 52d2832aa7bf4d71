"""Async HTTP client for the events backend."""

import asyncio
import logging
import time
from typing import Any, Optional, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from .exceptions import ApiDecodeError, ApiError, ApiNetworkError, ApiStatusError, ApiTimeoutError
from .models import Category, Event, EventFilter, Venue

logger = logging.getLogger(__name__)

T = TypeVar("T")

CATEGORIES_PATH = "/api/categories"
EVENTS_PATH = "/api/events"
VENUES_PATH = "/api/venues"
FAVORITES_PATH = "/api/favorites"

_CATEGORY_LIST = TypeAdapter(list[Category])
_EVENT_LIST = TypeAdapter(list[Event])
_VENUE_LIST = TypeAdapter(list[Venue])

# Remote add/remove are idempotent: these statuses mean "already in that state"
_ALREADY_APPLIED_STATUSES = {404, 409}


class EventsApiClient:
    """Async client for the categories, events, venues and favorites resources."""

    def __init__(self, settings: Any, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize API client.

        Args:
            settings: Application settings
            transport: Optional httpx transport (used to inject a mock transport in tests)
        """
        self.settings = settings
        self.client: Optional[httpx.AsyncClient] = None
        self._transport = transport

        logger.debug(f"Events API client initialized for {settings.api_base_url}")

    async def __aenter__(self) -> "EventsApiClient":
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client exists."""
        if self.client is None or self.client.is_closed:
            timeout = httpx.Timeout(
                connect=10.0, read=self.settings.request_timeout, write=10.0, pool=30.0
            )
            self.client = httpx.AsyncClient(
                base_url=self.settings.api_base_url,
                timeout=timeout,
                follow_redirects=True,
                transport=self._transport,
                headers={
                    "User-Agent": f"{self.settings.app_name}/1.0.0",
                    "Accept": "application/json",
                    "Cache-Control": "no-cache",
                },
            )
        return self.client

    async def close(self) -> None:
        """Close HTTP client."""
        if self.client and not self.client.is_closed:
            await self.client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make HTTP request with retry logic for transport failures.

        Raises:
            ApiTimeoutError: Request timed out on every attempt
            ApiNetworkError: Backend unreachable on every attempt
            ApiStatusError: Backend answered with a non-2xx status
        """
        client = await self._ensure_client()

        for attempt in range(self.settings.max_retries + 1):
            try:
                response = await client.request(method, path, params=params, json=json)
                response.raise_for_status()
                return response

            except (httpx.TimeoutException, httpx.TransportError) as e:
                if attempt < self.settings.max_retries:
                    backoff_time = self.settings.retry_backoff_factor**attempt
                    logger.warning(
                        f"{method} {path} failed (attempt {attempt + 1}/"
                        f"{self.settings.max_retries + 1}), retrying in {backoff_time:.1f}s: {e}"
                    )
                    await asyncio.sleep(backoff_time)
                    continue

                logger.error(f"All retry attempts failed for {method} {path}: {e}")
                if isinstance(e, httpx.TimeoutException):
                    raise ApiTimeoutError(f"Request timeout: {method} {path}") from e
                raise ApiNetworkError(f"Network error: {e}") from e

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                raise ApiStatusError(
                    f"HTTP {status} for {method} {path}: {e.response.reason_phrase}", status
                ) from e

        raise ApiError("Maximum retries exceeded")

    @staticmethod
    def _decode(response: httpx.Response, adapter: TypeAdapter[T], what: str) -> T:
        try:
            return adapter.validate_python(response.json())
        except (ValueError, ValidationError) as e:
            raise ApiDecodeError(f"Malformed {what} payload: {e}", response.status_code) from e

    @staticmethod
    def _decode_count(response: httpx.Response, what: str) -> int:
        try:
            return int(response.json()["count"])
        except (ValueError, KeyError, TypeError) as e:
            raise ApiDecodeError(f"Malformed {what} count payload: {e}") from e

    @staticmethod
    def _cache_buster() -> str:
        return str(int(time.time() * 1000))

    async def get_categories(self) -> list[Category]:
        """Fetch the ordered category list."""
        response = await self._request("GET", CATEGORIES_PATH, params={"t": self._cache_buster()})
        categories = self._decode(response, _CATEGORY_LIST, "categories")
        logger.debug(f"Fetched {len(categories)} categories")
        return categories

    async def get_events(self, event_filter: Optional[EventFilter] = None) -> list[Event]:
        """Fetch events, narrowed by the filter when one is given."""
        params = event_filter.to_params() if event_filter else {}
        response = await self._request("GET", EVENTS_PATH, params=params)
        events = self._decode(response, _EVENT_LIST, "events")
        logger.debug(f"Fetched {len(events)} events ({event_filter or 'unfiltered'})")
        return events

    async def get_event_count(self, event_filter: Optional[EventFilter] = None) -> int:
        """Fetch the cheap change signal for an events filter context."""
        params: dict[str, Any] = {"count": "true", "category": "", "date": ""}
        if event_filter:
            params.update(event_filter.to_params())
        params["t"] = self._cache_buster()
        response = await self._request("GET", EVENTS_PATH, params=params)
        return self._decode_count(response, "events")

    async def get_venues(self, category_id: Optional[int] = None) -> list[Venue]:
        """Fetch venues, flattening the ``{venues, venue_categories}`` join rows."""
        params = {"categoryId": str(category_id)} if category_id is not None else {}
        response = await self._request("GET", VENUES_PATH, params=params)

        try:
            rows = response.json()
            flattened = [
                {**row["venues"], "venue_categories": row.get("venue_categories")}
                if isinstance(row, dict) and "venues" in row
                else row
                for row in rows
            ]
        except (ValueError, TypeError, KeyError) as e:
            raise ApiDecodeError(f"Malformed venues payload: {e}") from e

        try:
            return _VENUE_LIST.validate_python(flattened)
        except ValidationError as e:
            raise ApiDecodeError(f"Malformed venues payload: {e}") from e

    async def get_venue_count(self, category_id: Optional[int] = None) -> int:
        """Fetch the cheap change signal for the venues view."""
        params: dict[str, Any] = {"count": "true", "t": self._cache_buster()}
        if category_id is not None:
            params["categoryId"] = str(category_id)
        response = await self._request("GET", VENUES_PATH, params=params)
        return self._decode_count(response, "venues")

    async def get_favorites(self, user_id: int) -> set[int]:
        """Fetch the remote favorite event ids for a user.

        The backend may answer with bare ids or with full event objects.
        """
        response = await self._request("GET", FAVORITES_PATH, params={"userId": str(user_id)})
        try:
            items = response.json()
            return {int(item["id"]) if isinstance(item, dict) else int(item) for item in items}
        except (ValueError, TypeError, KeyError) as e:
            raise ApiDecodeError(f"Malformed favorites payload: {e}") from e

    async def add_favorite(self, user_id: int, event_id: int) -> None:
        """Add one remote favorite; adding an existing favorite is a no-op."""
        try:
            await self._request(
                "POST", FAVORITES_PATH, json={"userId": user_id, "eventId": event_id}
            )
        except ApiStatusError as e:
            if e.status_code not in _ALREADY_APPLIED_STATUSES:
                raise
            logger.debug(f"Favorite {event_id} already present remotely for user {user_id}")

    async def remove_favorite(self, user_id: int, event_id: int) -> None:
        """Remove one remote favorite; removing an absent favorite is a no-op."""
        try:
            await self._request(
                "DELETE",
                FAVORITES_PATH,
                params={"userId": str(user_id), "eventId": str(event_id)},
            )
        except ApiStatusError as e:
            if e.status_code not in _ALREADY_APPLIED_STATUSES:
                raise
            logger.debug(f"Favorite {event_id} already absent remotely for user {user_id}")

    async def check_health(self, url: str, timeout: float) -> bool:
        """Probe a URL; any HTTP answer below 500 means the transport is up."""
        client = await self._ensure_client()
        try:
            response = await client.get(url, timeout=timeout)
        except httpx.TransportError as e:
            logger.debug(f"Connectivity probe failed for {url}: {e}")
            return False
        return response.status_code < 500

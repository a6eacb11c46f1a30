"""HTTP client for a Nominatim-compatible geocoding service."""

from __future__ import annotations

import logging
import time

import httpx

from ...config import settings
from ...errors import GeocodeUnavailable
from ...models.domain import Coordinate

logger = logging.getLogger(__name__)


class GeocodingClient:
    """Resolve street addresses to coordinates.

    ``geocode`` returns ``None`` when the service answers but finds nothing, and
    raises ``GeocodeUnavailable`` when the service cannot be reached in time.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        country: str | None = None,
        user_agent: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.geocoder_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Geocoder base URL is not configured.")
        self.timeout = timeout if timeout is not None else settings.geocoder_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.geocoder_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.geocoder_backoff_seconds
        self.country = country or settings.geocoder_country
        self.user_agent = user_agent or settings.geocoder_user_agent
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    def geocode(self, client_id: int | None, address: str, city: str, state: str) -> Coordinate | None:
        query = ", ".join(part.strip() for part in (address, city, state, self.country) if part and part.strip())
        params = {"q": query, "format": "json", "limit": 1}
        url = f"{self.base_url}/search"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    results = response.json()
                    if not results:
                        logger.debug(f"Geocoder found no match for client {client_id}: {query}")
                        return None
                    first = results[0]
                    return Coordinate(float(first["lat"]), float(first["lon"]))
                except (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Geocoder unavailable after {self.max_retries} retries: {e}")
                        raise GeocodeUnavailable(f"Geocoding service at {self.base_url} is unreachable: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Geocoder request failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
                except httpx.TransportError as e:
                    logger.warning(f"Geocoder transport error: {e}")
                    raise GeocodeUnavailable(f"Geocoding service at {self.base_url} failed: {e}") from e
                except httpx.HTTPStatusError as e:
                    if e.response.status_code < 500 and e.response.status_code != 429:
                        raise GeocodeUnavailable(
                            f"Geocoder rejected request with status {e.response.status_code}"
                        ) from e
                    attempt += 1
                    if attempt > self.max_retries:
                        raise GeocodeUnavailable(
                            f"Geocoder returned status {e.response.status_code} after {self.max_retries} retries"
                        ) from e
                    time.sleep(self.backoff_seconds * attempt)
                except (KeyError, TypeError, ValueError) as e:
                    raise GeocodeUnavailable(f"Geocoder returned an unreadable response: {e}") from e
        finally:
            client.close()


def check_health(base_url: str | None = None) -> bool:
    """Check geocoder availability with a minimal search request."""
    base = base_url or settings.geocoder_base_url
    if not base:
        return False
    try:
        response = httpx.get(
            f"{base.rstrip('/')}/search",
            params={"q": settings.geocoder_country, "format": "json", "limit": 1},
            headers={"User-Agent": settings.geocoder_user_agent},
            timeout=5.0,
        )
        response.raise_for_status()
        return isinstance(response.json(), list)
    except httpx.HTTPError:
        return False
    except ValueError:
        return False

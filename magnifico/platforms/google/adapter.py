"""Google Places transport: wires request builder, HTTP client, and parser."""

import logging
from types import TracebackType
from typing import Any

import httpx

from magnifico.core.config import ProviderConfig
from magnifico.core.errors import Misconfigured, UpstreamUnavailable
from magnifico.core.schemas import Candidate, PlaceQuery
from magnifico.platforms.base import PlacesTransport
from magnifico.platforms.google.parser import parse_places
from magnifico.platforms.google.searcher import build_headers, build_request

logger = logging.getLogger(__name__)


class GooglePlacesAdapter(PlacesTransport):
    """Google Places (New) search transport.

    An ``httpx.AsyncClient`` may be injected via constructor; otherwise one
    is created on first use and closed by ``aclose()`` or ``async with``.
    No retries: failures surface as UpstreamUnavailable.
    """

    def __init__(
        self,
        api_key: str | None,
        config: ProviderConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._config = config or ProviderConfig()
        self._client = client
        self._owns_client = client is None

    @property
    def provider_id(self) -> str:
        return "google"

    async def __aenter__(self) -> "GooglePlacesAdapter":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def search(self, query: PlaceQuery) -> list[Candidate]:
        """Search Google Places for the query's category around its location."""
        if not self._api_key:
            msg = (
                "Google Places API key not configured. "
                f"Set {self._config.api_key_env} or provider.api_key in settings."
            )
            raise Misconfigured(msg)

        path, body = build_request(query, self._config)
        url = f"{self._config.base_url.rstrip('/')}{path}"
        logger.info(
            "Searching %s near (%.4f, %.4f)%s",
            query.category.value,
            query.coordinates.latitude,
            query.coordinates.longitude,
            " within viewport" if query.viewport is not None else "",
        )

        try:
            response = await self._get_client().post(
                url,
                json=body,
                headers=build_headers(self._api_key),
                timeout=self._config.timeout_s,
            )
        except httpx.HTTPError as e:
            msg = f"Google Places request failed: {e}"
            raise UpstreamUnavailable(msg) from e

        payload = self._check_response(response)
        candidates = parse_places(payload)
        logger.info("Google Places returned %d candidates", len(candidates))
        return candidates

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    def _check_response(self, response: httpx.Response) -> dict[str, Any]:
        """Map HTTP failures onto the error taxonomy and decode the body."""
        if response.status_code in (401, 403):
            msg = f"Google Places rejected the API key (HTTP {response.status_code})"
            raise Misconfigured(msg)
        if response.is_error:
            logger.error(
                "Google Places search failed: status=%d, error_message=%s",
                response.status_code, _error_message(response),
            )
            msg = f"Google Places returned HTTP {response.status_code}"
            raise UpstreamUnavailable(msg)
        try:
            payload = response.json()
        except ValueError as e:
            msg = "Google Places returned a non-JSON body"
            raise UpstreamUnavailable(msg) from e
        if not isinstance(payload, dict):
            msg = "Google Places returned an unexpected payload"
            raise UpstreamUnavailable(msg)
        return payload


def _error_message(response: httpx.Response) -> str:
    try:
        return str(response.json().get("error", {}).get("message", ""))
    except (ValueError, AttributeError):
        return response.text[:200]

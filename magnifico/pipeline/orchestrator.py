"""Orchestrator: wires cache, transport, ranker, and cache write.

Data flow:
  1. Weight lookup (Misconfigured if the category has none)
  2. Cache gate: a live entry is returned with no network call
  3. Transport search → raw candidates (no retry; failures → UpstreamUnavailable)
  4. Ranker → deduplicated, scored, ordered places
  5. Cache put
  6. Return

Nothing is written to the cache for a failed, timed-out or cancelled
search, and no lock is held while the transport call is in flight.
"""

import asyncio
import json
import logging
from collections.abc import Mapping

from magnifico.core.config import ScoringWeights, Settings
from magnifico.core.errors import Misconfigured, UpstreamUnavailable
from magnifico.core.schemas import (
    Candidate,
    Coordinates,
    PlaceQuery,
    PlaceType,
    ScoredPlace,
    Viewport,
)
from magnifico.pipeline.cache import ResultCache
from magnifico.pipeline.ranker import rank
from magnifico.platforms import get_transport
from magnifico.platforms.base import PlacesTransport

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    """Cache-aware entry point that turns a location request into ranked places.

    Each instance owns its cache, so independent orchestrators (e.g. in
    tests) never share results.
    """

    def __init__(
        self,
        transport: PlacesTransport,
        weights: Mapping[PlaceType, ScoringWeights],
        cache: ResultCache | None = None,
    ) -> None:
        self._transport = transport
        self._weights = dict(weights)
        self._cache = cache if cache is not None else ResultCache()

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def transport(self) -> PlacesTransport:
        return self._transport

    async def discover(
        self,
        coordinates: Coordinates,
        category: PlaceType,
        viewport: Viewport | None = None,
        *,
        timeout: float | None = None,
    ) -> list[ScoredPlace]:
        """Return ranked places for a location, category and optional viewport.

        Args:
            coordinates: Center of the search.
            category: Which weight set and provider filter to use.
            viewport: Optional map rectangle; narrows the search and adds a
                location bonus for places strictly inside it.
            timeout: Seconds to wait for the transport. None waits indefinitely.

        Raises:
            Misconfigured: No weights for the category, or no usable credential.
            UpstreamUnavailable: The transport failed or timed out.
        """
        # Step 1: Weights
        weights = self._weights.get(category)
        if weights is None:
            msg = f"No scoring weights configured for '{category.value}'"
            raise Misconfigured(msg)

        # Step 2: Cache gate
        key = self._cache.make_key(coordinates, category, viewport)
        entry = self._cache.get(key)
        if entry is not None:
            logger.debug("Cache hit for %s (%d places)", category.value, len(entry.places))
            return list(entry.places)

        # Step 3: Transport search
        query = PlaceQuery(coordinates=coordinates, category=category, viewport=viewport)
        raw_candidates = await self._search(query, timeout)
        logger.info("Raw candidates: %d", len(raw_candidates))

        # Step 4: Rank
        ranked = rank(raw_candidates, weights, viewport)

        # Step 5: Cache put
        self._cache.put(key, ranked)

        logger.info(
            "Discover %s: %d raw, %d ranked",
            category.value, len(raw_candidates), len(ranked),
        )
        return ranked

    async def _search(self, query: PlaceQuery, timeout: float | None) -> list[Candidate]:
        """Call the transport, mapping every failure onto the error taxonomy.

        Failures leave the cache untouched: the key was a miss, and any entry
        present now was written by a concurrent request that succeeded.
        """
        try:
            if timeout is None:
                return await self._transport.search(query)
            return await asyncio.wait_for(self._transport.search(query), timeout)
        except (Misconfigured, UpstreamUnavailable):
            raise
        except asyncio.TimeoutError as e:
            msg = f"{self._transport.provider_id} search timed out after {timeout}s"
            raise UpstreamUnavailable(msg) from e
        except Exception as e:
            logger.warning("Transport %s failed: %s", self._transport.provider_id, e)
            msg = f"{self._transport.provider_id} search failed: {e}"
            raise UpstreamUnavailable(msg) from e


def build_orchestrator(
    settings: Settings,
    transport: PlacesTransport | None = None,
) -> SearchOrchestrator:
    """Wire an orchestrator from settings.

    The transport defaults to the registry entry named by
    ``settings.provider.name``.
    """
    return SearchOrchestrator(
        transport=transport if transport is not None else get_transport(settings.provider),
        weights=settings.weights,
        cache=ResultCache.from_config(settings.cache),
    )


def export_results_json(places: list[ScoredPlace]) -> str:
    """Export ranked places, with their score breakdowns, as a JSON string."""
    data = []
    for rank_position, p in enumerate(places, start=1):
        c = p.candidate
        data.append({
            "rank": rank_position,
            "id": c.id,
            "name": c.name,
            "latitude": c.coordinates.latitude,
            "longitude": c.coordinates.longitude,
            "address": c.address,
            "rating": c.rating,
            "review_count": c.review_count,
            "price_level": c.price_level.value if c.price_level else None,
            "types": list(c.types),
            "total_score": round(p.total_score, 3),
            "breakdown": {
                name: {"score": round(f.score, 3), "reason": f.reason}
                for name, f in p.breakdown.factors()
            },
        })
    return json.dumps(data, indent=2)

"""Tests for the search orchestrator: cache gate, errors, cancellation."""

import asyncio
import json

import pytest

from magnifico.core.config import Settings, default_weights, hotel_weights
from magnifico.core.errors import Misconfigured, UpstreamUnavailable
from magnifico.core.schemas import (
    Candidate,
    Coordinates,
    PlaceQuery,
    PlaceType,
    PriceLevel,
    Viewport,
)
from magnifico.pipeline.cache import ResultCache
from magnifico.pipeline.orchestrator import (
    SearchOrchestrator,
    build_orchestrator,
    export_results_json,
)
from magnifico.platforms.base import PlacesTransport

# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


class FakeTransport(PlacesTransport):
    """Returns pre-configured candidates and records every query."""

    def __init__(
        self,
        candidates: list[Candidate] | None = None,
        *,
        error: BaseException | None = None,
        delay: float = 0.0,
    ) -> None:
        self._candidates = candidates or []
        self._error = error
        self._delay = delay
        self.queries: list[PlaceQuery] = []

    @property
    def provider_id(self) -> str:
        return "fake"

    async def search(self, query: PlaceQuery) -> list[Candidate]:
        self.queries.append(query)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._candidates)


def _candidate(id: str, **kwargs: object) -> Candidate:
    return Candidate(
        id=id,
        name=str(kwargs.pop("name", f"Place {id}")),
        coordinates=Coordinates(latitude=40.7128, longitude=-74.0060),
        **kwargs,  # type: ignore[arg-type]
    )


HERE = Coordinates(latitude=40.7128, longitude=-74.0060)
JITTER = Coordinates(latitude=40.71281, longitude=-74.00601)


def _orchestrator(transport: PlacesTransport, **cache_kwargs: object) -> SearchOrchestrator:
    return SearchOrchestrator(
        transport=transport,
        weights=default_weights(),
        cache=ResultCache(**cache_kwargs),  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Cache gate
# ---------------------------------------------------------------------------


class TestCacheGate:
    async def test_second_call_uses_cache(self) -> None:
        transport = FakeTransport([_candidate("a"), _candidate("b")])
        orch = _orchestrator(transport)

        first = await orch.discover(HERE, PlaceType.HOTEL)
        second = await orch.discover(HERE, PlaceType.HOTEL)

        assert len(transport.queries) == 1
        assert first == second

    async def test_jittered_coordinates_hit(self) -> None:
        transport = FakeTransport([_candidate("a")])
        orch = _orchestrator(transport)

        await orch.discover(HERE, PlaceType.HOTEL)
        await orch.discover(JITTER, PlaceType.HOTEL)

        assert len(transport.queries) == 1

    async def test_other_category_misses(self) -> None:
        transport = FakeTransport([_candidate("a")])
        orch = _orchestrator(transport)

        await orch.discover(HERE, PlaceType.HOTEL)
        await orch.discover(HERE, PlaceType.RESTAURANT)

        assert len(transport.queries) == 2
        assert transport.queries[1].category is PlaceType.RESTAURANT

    async def test_viewport_changes_key(self) -> None:
        transport = FakeTransport([_candidate("a")])
        orch = _orchestrator(transport)
        vp = Viewport(
            low=Coordinates(latitude=40.70, longitude=-74.02),
            high=Coordinates(latitude=40.73, longitude=-73.99),
        )

        await orch.discover(HERE, PlaceType.HOTEL)
        await orch.discover(HERE, PlaceType.HOTEL, vp)

        assert len(transport.queries) == 2
        assert transport.queries[1].viewport == vp

    async def test_expired_entry_refetched(self) -> None:
        now = [0.0]
        transport = FakeTransport([_candidate("a")])
        orch = _orchestrator(transport, ttl_seconds=60, clock=lambda: now[0])

        await orch.discover(HERE, PlaceType.HOTEL)
        now[0] = 61.0
        await orch.discover(HERE, PlaceType.HOTEL)

        assert len(transport.queries) == 2

    async def test_independent_orchestrators_do_not_share(self) -> None:
        t1 = FakeTransport([_candidate("a")])
        t2 = FakeTransport([_candidate("b")])
        await _orchestrator(t1).discover(HERE, PlaceType.HOTEL)
        result = await _orchestrator(t2).discover(HERE, PlaceType.HOTEL)
        assert [p.candidate.id for p in result] == ["b"]

    async def test_returned_list_is_a_copy(self) -> None:
        orch = _orchestrator(FakeTransport([_candidate("a")]))
        first = await orch.discover(HERE, PlaceType.HOTEL)
        first.clear()
        second = await orch.discover(HERE, PlaceType.HOTEL)
        assert len(second) == 1


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


class TestRanking:
    async def test_ranked_with_category_weights(self) -> None:
        transport = FakeTransport([
            _candidate("motel", name="Motel 6", price_level=PriceLevel.INEXPENSIVE,
                       rating=3.1, review_count=40, types=("lodging",)),
            _candidate("ritz", name="The Ritz-Carlton Downtown",
                       price_level=PriceLevel.VERY_EXPENSIVE, rating=4.8,
                       review_count=3200, types=("lodging",)),
        ])
        orch = _orchestrator(transport)

        result = await orch.discover(HERE, PlaceType.HOTEL)

        assert [p.candidate.id for p in result] == ["ritz", "motel"]
        assert result[0].breakdown.brand.score > 0

    async def test_duplicates_removed(self) -> None:
        transport = FakeTransport([_candidate("a"), _candidate("a"), _candidate("b")])
        result = await _orchestrator(transport).discover(HERE, PlaceType.RESTAURANT)
        assert sorted(p.candidate.id for p in result) == ["a", "b"]

    async def test_missing_weights_misconfigured(self) -> None:
        transport = FakeTransport([_candidate("a")])
        orch = SearchOrchestrator(transport, {PlaceType.HOTEL: hotel_weights()})
        with pytest.raises(Misconfigured):
            await orch.discover(HERE, PlaceType.RESTAURANT)
        assert transport.queries == []


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    async def test_transport_error_becomes_upstream_unavailable(self) -> None:
        orch = _orchestrator(FakeTransport(error=ConnectionError("boom")))
        with pytest.raises(UpstreamUnavailable):
            await orch.discover(HERE, PlaceType.HOTEL)
        key = orch.cache.make_key(HERE, PlaceType.HOTEL)
        assert orch.cache.get(key) is None
        assert len(orch.cache) == 0

    async def test_upstream_unavailable_passes_through(self) -> None:
        error = UpstreamUnavailable("down")
        orch = _orchestrator(FakeTransport(error=error))
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await orch.discover(HERE, PlaceType.HOTEL)
        assert exc_info.value is error

    async def test_misconfigured_passes_through(self) -> None:
        orch = _orchestrator(FakeTransport(error=Misconfigured("no key")))
        with pytest.raises(Misconfigured):
            await orch.discover(HERE, PlaceType.HOTEL)
        assert len(orch.cache) == 0

    async def test_no_retry(self) -> None:
        transport = FakeTransport(error=ConnectionError("boom"))
        with pytest.raises(UpstreamUnavailable):
            await _orchestrator(transport).discover(HERE, PlaceType.HOTEL)
        assert len(transport.queries) == 1

    async def test_failure_after_expiry_not_served_stale(self) -> None:
        now = [0.0]
        cache = ResultCache(ttl_seconds=60, clock=lambda: now[0])
        good = SearchOrchestrator(FakeTransport([_candidate("a")]), default_weights(), cache)
        await good.discover(HERE, PlaceType.HOTEL)

        now[0] = 120.0
        bad = SearchOrchestrator(FakeTransport(error=OSError("down")), default_weights(), cache)
        with pytest.raises(UpstreamUnavailable):
            await bad.discover(HERE, PlaceType.HOTEL)
        assert len(cache) == 0

    async def test_timeout(self) -> None:
        orch = _orchestrator(FakeTransport([_candidate("a")], delay=1.0))
        with pytest.raises(UpstreamUnavailable, match="timed out"):
            await orch.discover(HERE, PlaceType.HOTEL, timeout=0.01)
        assert len(orch.cache) == 0

    async def test_cancellation_writes_nothing(self) -> None:
        orch = _orchestrator(FakeTransport([_candidate("a")], delay=1.0))
        task = asyncio.create_task(orch.discover(HERE, PlaceType.HOTEL))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(orch.cache) == 0


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrentDiscover:
    async def test_concurrent_misses_may_both_fetch(self) -> None:
        transport = FakeTransport([_candidate("a")], delay=0.01)
        orch = _orchestrator(transport)

        results = await asyncio.gather(
            orch.discover(HERE, PlaceType.HOTEL),
            orch.discover(HERE, PlaceType.HOTEL),
        )

        assert 1 <= len(transport.queries) <= 2
        assert results[0] == results[1]
        assert len(orch.cache) == 1

    async def test_late_failure_keeps_concurrent_success(self) -> None:
        cache = ResultCache()
        good = SearchOrchestrator(
            FakeTransport([_candidate("a")], delay=0.01), default_weights(), cache,
        )
        bad = SearchOrchestrator(
            FakeTransport(error=OSError("down"), delay=0.05), default_weights(), cache,
        )

        results = await asyncio.gather(
            good.discover(HERE, PlaceType.HOTEL),
            bad.discover(HERE, PlaceType.HOTEL),
            return_exceptions=True,
        )

        assert [p.candidate.id for p in results[0]] == ["a"]
        assert isinstance(results[1], UpstreamUnavailable)
        entry = cache.get(cache.make_key(HERE, PlaceType.HOTEL))
        assert entry is not None
        assert [p.candidate.id for p in entry.places] == ["a"]


# ---------------------------------------------------------------------------
# Wiring and export
# ---------------------------------------------------------------------------


class TestBuildOrchestrator:
    def test_uses_settings(self) -> None:
        settings = Settings(cache={"ttl_seconds": 42})
        transport = FakeTransport()
        orch = build_orchestrator(settings, transport=transport)
        assert orch.transport is transport
        assert orch.cache.ttl_seconds == 42

    def test_default_transport_from_registry(self) -> None:
        orch = build_orchestrator(Settings(provider={"api_key": "k"}))
        assert orch.transport.provider_id == "google"


class TestExportJson:
    async def test_export(self) -> None:
        orch = _orchestrator(FakeTransport([
            _candidate("a", rating=4.5, review_count=100, price_level=PriceLevel.MODERATE),
        ]))
        places = await orch.discover(HERE, PlaceType.RESTAURANT)

        data = json.loads(export_results_json(places))

        assert data[0]["rank"] == 1
        assert data[0]["id"] == "a"
        assert data[0]["price_level"] == "PRICE_LEVEL_MODERATE"
        assert set(data[0]["breakdown"]) == {
            "brand", "price", "keywords", "location", "category", "reviews",
        }

    def test_export_empty(self) -> None:
        assert json.loads(export_results_json([])) == []

"""Google Places (New) payload parser: converts place JSON into Candidate objects.

All normalization of the provider's loosely typed payloads happens here, so
the scoring core can rely on explicit optional fields:
  - id and location are required; without them InvalidCandidate is raised.
  - Every other field is optional and becomes None / empty when absent.
  - Out-of-range rating or review count and unknown price levels
    (e.g. PRICE_LEVEL_UNSPECIFIED) become None rather than failing the record.
"""

import logging
from typing import Any

from pydantic import ValidationError

from magnifico.core.errors import InvalidCandidate
from magnifico.core.schemas import Candidate, Coordinates, PriceLevel

logger = logging.getLogger(__name__)

_PRICE_LEVELS = {level.value: level for level in PriceLevel}


def parse_places(response: dict[str, Any]) -> list[Candidate]:
    """Parse every place in a search response, skipping invalid records."""
    results: list[Candidate] = []
    skipped = 0
    for payload in response.get("places") or []:
        try:
            results.append(parse_place(payload))
        except InvalidCandidate as e:
            skipped += 1
            logger.debug("Skipping place record: %s", e)
    if skipped:
        logger.info("Dropped %d invalid place records", skipped)
    return results


def parse_place(payload: dict[str, Any]) -> Candidate:
    """Parse a single place payload.

    Raises:
        InvalidCandidate: If the record cannot be identified or located.
    """
    place_id = payload.get("id")
    if not isinstance(place_id, str) or not place_id.strip():
        msg = "place record has no id"
        raise InvalidCandidate(msg)

    display_name = _as_dict(payload.get("displayName"))
    try:
        return Candidate(
            id=place_id,
            name=str(display_name.get("text") or ""),
            coordinates=_parse_location(place_id, payload.get("location")),
            address=payload.get("formattedAddress") or None,
            rating=_parse_rating(payload.get("rating")),
            review_count=_parse_review_count(payload.get("userRatingCount")),
            price_level=_PRICE_LEVELS.get(payload.get("priceLevel") or ""),
            description=_as_dict(payload.get("editorialSummary")).get("text") or None,
            types=tuple(t for t in payload.get("types") or [] if isinstance(t, str)),
            language_code=display_name.get("languageCode") or None,
            photo_refs=tuple(
                p["name"] for p in payload.get("photos") or [] if isinstance(p, dict) and p.get("name")
            ),
        )
    except ValidationError as e:
        msg = f"place {place_id} failed validation: {e.error_count()} error(s)"
        raise InvalidCandidate(msg) from e


def _parse_location(place_id: str, location: Any) -> Coordinates:
    if not isinstance(location, dict):
        msg = f"place {place_id} has no location"
        raise InvalidCandidate(msg)
    lat = location.get("latitude")
    lng = location.get("longitude")
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        msg = f"place {place_id} has an incomplete location"
        raise InvalidCandidate(msg)
    return Coordinates(latitude=lat, longitude=lng)


def _parse_rating(value: Any) -> float | None:
    if not isinstance(value, (int, float)) or not 0.0 <= value <= 5.0:
        return None
    return float(value)


def _parse_review_count(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        return None
    return int(value)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}

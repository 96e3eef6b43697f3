"""Google Places (New) request builders.

Pure functions, zero network dependency.

Without a viewport the search is a nearby search in a circle around the
user; with one it is a text search restricted to the viewport rectangle,
since nearby search only accepts circles.
"""

from typing import Any

from magnifico.core.config import ProviderConfig
from magnifico.core.schemas import Coordinates, PlaceQuery, PlaceType, Viewport

NEARBY_PATH = "/places:searchNearby"
TEXT_PATH = "/places:searchText"

FIELD_MASK = ",".join(
    f"places.{field}"
    for field in (
        "id",
        "displayName",
        "location",
        "formattedAddress",
        "rating",
        "userRatingCount",
        "priceLevel",
        "editorialSummary",
        "types",
        "photos",
    )
)

# --- Mapping dicts (provider concern) ---

INCLUDED_TYPE_MAP: dict[PlaceType, str] = {
    PlaceType.HOTEL: "lodging",
    PlaceType.RESTAURANT: "restaurant",
}

TEXT_QUERY_MAP: dict[PlaceType, str] = {
    PlaceType.HOTEL: "hotels",
    PlaceType.RESTAURANT: "restaurants",
}


def build_request(query: PlaceQuery, config: ProviderConfig) -> tuple[str, dict[str, Any]]:
    """Return (path, JSON body) for a query.

    Args:
        query: Coordinates, category and optional viewport.
        config: Provider settings (radius, result count, language).

    Returns:
        Path relative to ``config.base_url`` and the request body.
    """
    if query.viewport is not None:
        return TEXT_PATH, build_text_body(query.category, query.viewport, config)
    return NEARBY_PATH, build_nearby_body(query.category, query.coordinates, config)


def build_nearby_body(
    category: PlaceType,
    center: Coordinates,
    config: ProviderConfig,
) -> dict[str, Any]:
    return {
        "includedTypes": [INCLUDED_TYPE_MAP[category]],
        "maxResultCount": config.max_results,
        "languageCode": config.language_code,
        "rankPreference": "POPULARITY",
        "locationRestriction": {
            "circle": {
                "center": _latlng(center),
                "radius": config.radius_m,
            },
        },
    }


def build_text_body(
    category: PlaceType,
    viewport: Viewport,
    config: ProviderConfig,
) -> dict[str, Any]:
    return {
        "textQuery": TEXT_QUERY_MAP[category],
        "includedType": INCLUDED_TYPE_MAP[category],
        "pageSize": config.max_results,
        "languageCode": config.language_code,
        "locationRestriction": {
            "rectangle": {
                "low": _latlng(viewport.low),
                "high": _latlng(viewport.high),
            },
        },
    }


def build_headers(api_key: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "X-Goog-Api-Key": api_key,
        "X-Goog-FieldMask": FIELD_MASK,
    }


def _latlng(point: Coordinates) -> dict[str, float]:
    return {"latitude": point.latitude, "longitude": point.longitude}

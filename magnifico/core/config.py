"""Configuration models and YAML loader for place discovery."""

import os
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from magnifico.core.schemas import PlaceType, PriceLevel


class ScoringWeights(BaseModel):
    """Tunable coefficients for one place category.

    Frozen and loaded once at startup. The lookup tables are stored as
    read-only mappings, so a single instance is safe to share between
    concurrent requests.
    """

    model_config = ConfigDict(frozen=True)

    # Brand: substrings matched case-insensitively against the name, in order.
    brands: tuple[str, ...] = ()
    brand_bonus: float = Field(default=2.0, ge=0.0)

    # Price: preference curve per tier. A tier missing from the curve is neutral.
    price_curve: Mapping[PriceLevel, float] = Field(default_factory=dict, validate_default=True)

    # Keywords: delta per keyword found in name or description. The cap
    # applies to bonuses only.
    keywords: Mapping[str, float] = Field(default_factory=dict, validate_default=True)
    max_keyword_matches: int = Field(default=3, ge=0)

    # Location: address hints and the in-viewport bonus. Never negative.
    location_keywords: Mapping[str, float] = Field(default_factory=dict, validate_default=True)
    viewport_bonus: float = Field(default=0.5, ge=0.0)

    # Category: best single matching tag weight.
    category_weights: Mapping[str, float] = Field(default_factory=dict, validate_default=True)

    # Reviews: log-scaled volume times rating above the threshold.
    review_min_rating: float = Field(default=3.5, ge=0.0, le=5.0)
    review_scale: float = Field(default=0.5, ge=0.0)
    low_rating_penalty: float = Field(default=-0.5, le=0.0)

    @field_validator("price_curve", "keywords", "location_keywords", "category_weights")
    @classmethod
    def read_only_table(cls, v: Mapping[Any, float]) -> Mapping[Any, float]:
        return MappingProxyType(dict(v))

    @field_validator("location_keywords")
    @classmethod
    def location_never_negative(cls, v: Mapping[str, float]) -> Mapping[str, float]:
        negative = sorted(k for k, delta in v.items() if delta < 0)
        if negative:
            msg = f"location keyword deltas must be >= 0: {negative}"
            raise ValueError(msg)
        return v

    @field_serializer("price_curve", "keywords", "location_keywords", "category_weights")
    def table_as_dict(self, v: Mapping[Any, float]) -> dict[Any, float]:
        return dict(v)


def hotel_weights() -> ScoringWeights:
    """Default weights for hotels: premium brands and upper price tiers."""
    return ScoringWeights(
        brands=(
            "Four Seasons",
            "Ritz-Carlton",
            "St. Regis",
            "Mandarin Oriental",
            "The Peninsula",
            "Rosewood",
            "Aman",
            "Waldorf Astoria",
            "Park Hyatt",
            "Bulgari",
            "Six Senses",
            "Raffles",
            "Belmond",
            "Shangri-La",
            "Fairmont",
            "JW Marriott",
            "Conrad",
            "InterContinental",
            "Edition",
        ),
        brand_bonus=2.5,
        price_curve={
            PriceLevel.FREE: -1.0,
            PriceLevel.INEXPENSIVE: -0.5,
            PriceLevel.MODERATE: 0.5,
            PriceLevel.EXPENSIVE: 1.5,
            PriceLevel.VERY_EXPENSIVE: 2.0,
        },
        keywords={
            "five-star": 1.0,
            "5-star": 1.0,
            "luxury": 0.8,
            "boutique": 0.7,
            "resort": 0.6,
            "spa": 0.5,
            "rooftop": 0.5,
            "suites": 0.4,
            "palace": 0.4,
            "design": 0.3,
            "hostel": -1.0,
            "motel": -0.8,
            "budget": -0.6,
        },
        max_keyword_matches=3,
        location_keywords={
            "downtown": 0.3,
            "old town": 0.3,
            "city centre": 0.3,
            "city center": 0.3,
            "waterfront": 0.4,
            "beach": 0.4,
        },
        viewport_bonus=0.5,
        category_weights={
            "resort_hotel": 1.2,
            "lodging": 0.5,
            "hotel": 0.5,
            "bed_and_breakfast": 0.3,
            "guest_house": 0.1,
            "motel": -0.5,
            "hostel": -0.8,
            "campground": -1.0,
        },
        review_min_rating=3.5,
        review_scale=0.5,
        low_rating_penalty=-0.5,
    )


def restaurant_weights() -> ScoringWeights:
    """Default weights for restaurants: no brand list, cuisine and style driven."""
    return ScoringWeights(
        brands=(),
        brand_bonus=0.0,
        price_curve={
            PriceLevel.FREE: -0.5,
            PriceLevel.INEXPENSIVE: -0.25,
            PriceLevel.MODERATE: 0.75,
            PriceLevel.EXPENSIVE: 1.5,
            PriceLevel.VERY_EXPENSIVE: 1.75,
        },
        keywords={
            "michelin": 1.5,
            "tasting menu": 1.0,
            "omakase": 1.0,
            "chef": 0.6,
            "rooftop": 0.5,
            "wine bar": 0.5,
            "farm-to-table": 0.5,
            "seasonal": 0.4,
            "bistro": 0.3,
            "buffet": -0.5,
            "drive-thru": -1.0,
        },
        max_keyword_matches=3,
        location_keywords={
            "old town": 0.3,
            "harbour": 0.3,
            "harbor": 0.3,
            "waterfront": 0.4,
            "downtown": 0.2,
        },
        viewport_bonus=0.5,
        category_weights={
            "fine_dining_restaurant": 1.5,
            "french_restaurant": 0.8,
            "japanese_restaurant": 0.8,
            "italian_restaurant": 0.7,
            "seafood_restaurant": 0.7,
            "steak_house": 0.7,
            "wine_bar": 0.6,
            "mediterranean_restaurant": 0.6,
            "restaurant": 0.2,
            "cafe": 0.1,
            "meal_takeaway": -0.5,
            "fast_food_restaurant": -1.0,
        },
        review_min_rating=3.8,
        review_scale=0.5,
        low_rating_penalty=-0.5,
    )


def default_weights() -> dict[PlaceType, ScoringWeights]:
    """Fresh default weight sets for every place category."""
    return {
        PlaceType.HOTEL: hotel_weights(),
        PlaceType.RESTAURANT: restaurant_weights(),
    }


class ProviderConfig(BaseModel):
    """Search provider connection settings."""

    name: str = "google"
    api_key: str | None = None
    api_key_env: str = "GOOGLE_MAPS_API_KEY"
    base_url: str = "https://places.googleapis.com/v1"
    timeout_s: float = Field(default=10.0, gt=0.0)
    radius_m: float = Field(default=5000.0, ge=1.0, le=50000.0)
    max_results: int = Field(default=20, ge=1, le=20)
    language_code: str = "en"

    def resolve_api_key(self) -> str | None:
        """Explicit key first, then the configured environment variable."""
        key = self.api_key or os.environ.get(self.api_key_env, "")
        return key.strip() or None


class CacheConfig(BaseModel):
    """Result cache settings."""

    ttl_seconds: float = Field(default=300.0, ge=1.0)
    precision: int = Field(default=4, ge=0, le=7)
    max_entries: int = Field(default=256, ge=1)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    weights: dict[PlaceType, ScoringWeights] = Field(default_factory=default_weights)

    @field_validator("weights", mode="before")
    @classmethod
    def merge_with_defaults(cls, v: Any) -> dict[PlaceType, Any]:
        """Fill missing categories from defaults; shallow-merge partial overrides."""
        merged: dict[PlaceType, Any] = dict(default_weights())
        for key, override in (v or {}).items():
            place_type = PlaceType(key)
            if isinstance(override, dict):
                base = merged[place_type].model_dump()
                merged[place_type] = {**base, **override}
            else:
                merged[place_type] = override
        return merged

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)

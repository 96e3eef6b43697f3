"""Core data models for place discovery.

Everything here is frozen: candidates come from the provider once and are
never mutated, scores are attached via the ScoredPlace wrapper.
"""

from collections.abc import Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PlaceType(str, Enum):
    """Place categories the discovery core ranks."""

    HOTEL = "hotel"
    RESTAURANT = "restaurant"


class PriceLevel(str, Enum):
    """Ordinal price tier, using the provider's wire values."""

    FREE = "PRICE_LEVEL_FREE"
    INEXPENSIVE = "PRICE_LEVEL_INEXPENSIVE"
    MODERATE = "PRICE_LEVEL_MODERATE"
    EXPENSIVE = "PRICE_LEVEL_EXPENSIVE"
    VERY_EXPENSIVE = "PRICE_LEVEL_VERY_EXPENSIVE"

    @property
    def rank(self) -> int:
        """0 (free) through 4 (very expensive)."""
        return list(PriceLevel).index(self)


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class Viewport(BaseModel):
    """Map rectangle from its south-west (low) to north-east (high) corner.

    A viewport whose low longitude is greater than its high longitude
    crosses the antimeridian.
    """

    model_config = ConfigDict(frozen=True)

    low: Coordinates
    high: Coordinates

    @model_validator(mode="after")
    def low_below_high(self) -> "Viewport":
        if self.low.latitude > self.high.latitude:
            msg = "viewport low latitude must not exceed high latitude"
            raise ValueError(msg)
        return self

    def contains(self, point: Coordinates) -> bool:
        """Strict containment: points on the edge are outside."""
        if not self.low.latitude < point.latitude < self.high.latitude:
            return False
        if self.low.longitude <= self.high.longitude:
            return self.low.longitude < point.longitude < self.high.longitude
        return point.longitude > self.low.longitude or point.longitude < self.high.longitude


class Candidate(BaseModel):
    """A raw place record returned by the search provider, pre-scoring."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    coordinates: Coordinates
    address: str | None = None
    rating: float | None = Field(default=None, ge=0.0, le=5.0)
    review_count: int | None = Field(default=None, ge=0)
    price_level: PriceLevel | None = None
    description: str | None = None
    types: tuple[str, ...] = ()
    language_code: str | None = None
    photo_refs: tuple[str, ...] = ()


class PlaceQuery(BaseModel):
    """What a transport is asked to search for."""

    model_config = ConfigDict(frozen=True)

    coordinates: Coordinates
    category: PlaceType
    viewport: Viewport | None = None


class ScoreFactor(BaseModel):
    """One named contribution to a place's total score.

    ``applicable`` separates "not applicable" (no data, no match) from a
    factor that applied but happened to contribute zero.
    """

    model_config = ConfigDict(frozen=True)

    score: float = 0.0
    reason: str = "N/A"
    applicable: bool = False


FACTOR_NAMES = ("brand", "price", "keywords", "location", "category", "reviews")


class ScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    brand: ScoreFactor = Field(default_factory=ScoreFactor)
    price: ScoreFactor = Field(default_factory=ScoreFactor)
    keywords: ScoreFactor = Field(default_factory=ScoreFactor)
    location: ScoreFactor = Field(default_factory=ScoreFactor)
    category: ScoreFactor = Field(default_factory=ScoreFactor)
    reviews: ScoreFactor = Field(default_factory=ScoreFactor)

    def factors(self) -> Iterator[tuple[str, ScoreFactor]]:
        """Yield (name, factor) pairs in presentation order."""
        for name in FACTOR_NAMES:
            yield name, getattr(self, name)

    @property
    def total(self) -> float:
        return sum(factor.score for _, factor in self.factors())


class ScoredPlace(BaseModel):
    """Wrapper that pairs a frozen Candidate with its score breakdown.

    total_score is not clamped; display layers clamp if they need to.
    """

    model_config = ConfigDict(frozen=True)

    candidate: Candidate
    breakdown: ScoreBreakdown
    total_score: float

    @classmethod
    def from_breakdown(cls, candidate: Candidate, breakdown: ScoreBreakdown) -> "ScoredPlace":
        return cls(candidate=candidate, breakdown=breakdown, total_score=breakdown.total)

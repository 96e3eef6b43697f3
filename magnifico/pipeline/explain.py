"""Presentation helpers for "why this place ranks high" views.

Read-only views over ScoreBreakdown; nothing here feeds back into ranking.
"""

from pydantic import BaseModel, ConfigDict

from magnifico.core.schemas import PriceLevel, ScoreBreakdown

FACTOR_LABELS: dict[str, tuple[str, str]] = {
    "brand": ("Brand Recognition", "🏆"),
    "price": ("Price Level", "💰"),
    "keywords": ("Style & Keywords", "✨"),
    "location": ("Location Quality", "📍"),
    "category": ("Category", "🍽️"),
    "reviews": ("Review Popularity", "👥"),
}

_PRICE_DISPLAY: dict[PriceLevel, tuple[str, str]] = {
    PriceLevel.FREE: ("Free", "Free"),
    PriceLevel.INEXPENSIVE: ("$", "Inexpensive"),
    PriceLevel.MODERATE: ("$$", "Moderate"),
    PriceLevel.EXPENSIVE: ("$$$", "Expensive"),
    PriceLevel.VERY_EXPENSIVE: ("$$$$", "Very Expensive"),
}


class FactorExplanation(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    icon: str
    score: float
    reason: str


class PriceDisplay(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    label: str


def significant_factors(breakdown: ScoreBreakdown) -> list[FactorExplanation]:
    """Non-zero factors in presentation order, ready to render."""
    result: list[FactorExplanation] = []
    for name, factor in breakdown.factors():
        if factor.score == 0:
            continue
        label, icon = FACTOR_LABELS[name]
        result.append(FactorExplanation(
            name=name, label=label, icon=icon, score=factor.score, reason=factor.reason,
        ))
    return result


def format_price_level(level: PriceLevel | None) -> PriceDisplay | None:
    """Symbol and label for a price tier; None when the tier is unknown."""
    if level is None:
        return None
    symbol, label = _PRICE_DISPLAY[level]
    return PriceDisplay(symbol=symbol, label=label)


def display_score(total: float, floor: float = 0.0) -> float:
    """Clamp a total for display only, rounded to one decimal."""
    return round(max(total, floor), 1)

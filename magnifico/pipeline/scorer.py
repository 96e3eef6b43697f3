"""Rule-based desirability scoring for place candidates.

Six independent factors (brand, price, keywords, location, category,
reviews) each produce a ScoreFactor. The total is their plain sum: no
clamping or normalization happens here.

Everything in this module is pure. Weights are passed in explicitly and
only read, so scoring can run concurrently for any number of candidates.
"""

import math

from magnifico.core.config import ScoringWeights
from magnifico.core.schemas import (
    Candidate,
    ScoreBreakdown,
    ScoredPlace,
    ScoreFactor,
    Viewport,
)


NOT_APPLICABLE = ScoreFactor()


def score_candidate(
    candidate: Candidate,
    weights: ScoringWeights,
    viewport: Viewport | None = None,
) -> ScoreBreakdown:
    """Score a single candidate against one category's weights.

    Args:
        candidate: The place to score. Missing optional fields are not errors.
        weights: Category-specific coefficients.
        viewport: The request viewport, if any. Only ever adds to location.

    Returns:
        ScoreBreakdown with all six factors populated.
    """
    return ScoreBreakdown(
        brand=_brand_factor(candidate, weights),
        price=_price_factor(candidate, weights),
        keywords=_keyword_factor(candidate, weights),
        location=_location_factor(candidate, weights, viewport),
        category=_category_factor(candidate, weights),
        reviews=_review_factor(candidate, weights),
    )


def score_place(
    candidate: Candidate,
    weights: ScoringWeights,
    viewport: Viewport | None = None,
) -> ScoredPlace:
    """Score a candidate and wrap it as a ScoredPlace."""
    return ScoredPlace.from_breakdown(candidate, score_candidate(candidate, weights, viewport))


def _brand_factor(candidate: Candidate, weights: ScoringWeights) -> ScoreFactor:
    name = candidate.name.lower()
    for brand in weights.brands:
        if brand.lower() in name:
            return ScoreFactor(
                score=weights.brand_bonus,
                reason=f"Recognized premium brand: {brand}",
                applicable=True,
            )
    return NOT_APPLICABLE


def _price_factor(candidate: Candidate, weights: ScoringWeights) -> ScoreFactor:
    level = candidate.price_level
    if level is None:
        return ScoreFactor(reason="no price data")
    delta = weights.price_curve.get(level, 0.0)
    label = level.name.lower().replace("_", " ")
    return ScoreFactor(score=delta, reason=f"Price level: {label}", applicable=True)


def _keyword_factor(candidate: Candidate, weights: ScoringWeights) -> ScoreFactor:
    # Only bonuses are capped; every matched penalty keyword always counts.
    text = f"{candidate.name} {candidate.description or ''}".lower()
    matched: list[str] = []
    total = 0.0
    bonuses = 0
    for keyword, delta in weights.keywords.items():
        if keyword.lower() not in text:
            continue
        if delta > 0:
            if bonuses >= weights.max_keyword_matches:
                continue
            bonuses += 1
        matched.append(keyword)
        total += delta
    if not matched:
        return NOT_APPLICABLE
    return ScoreFactor(
        score=total,
        reason=f"Matched keywords: {', '.join(matched)}",
        applicable=True,
    )


def _location_factor(
    candidate: Candidate,
    weights: ScoringWeights,
    viewport: Viewport | None,
) -> ScoreFactor:
    total = 0.0
    reasons: list[str] = []

    if viewport is not None and viewport.contains(candidate.coordinates):
        total += weights.viewport_bonus
        reasons.append("Inside the map viewport")

    if candidate.address:
        address = candidate.address.lower()
        for hint, delta in weights.location_keywords.items():
            if hint.lower() in address:
                total += delta
                reasons.append(f"Address mentions '{hint}'")
                break

    if not reasons:
        return NOT_APPLICABLE
    return ScoreFactor(score=total, reason="; ".join(reasons), applicable=True)


def _category_factor(candidate: Candidate, weights: ScoringWeights) -> ScoreFactor:
    # Best single tag, not a sum: many loosely related tags earn nothing extra.
    best: tuple[float, str] | None = None
    for tag in candidate.types:
        weight = weights.category_weights.get(tag)
        if weight is not None and (best is None or weight > best[0]):
            best = (weight, tag)
    if best is None:
        return NOT_APPLICABLE
    weight, tag = best
    return ScoreFactor(
        score=weight,
        reason=f"Category: {tag.replace('_', ' ')}",
        applicable=True,
    )


def _review_factor(candidate: Candidate, weights: ScoringWeights) -> ScoreFactor:
    rating = candidate.rating
    count = candidate.review_count
    if rating is None or count is None:
        return ScoreFactor(reason="no review data")

    if rating < weights.review_min_rating:
        return ScoreFactor(
            score=weights.low_rating_penalty,
            reason=f"Rating {rating:.1f} below {weights.review_min_rating:.1f}",
            applicable=True,
        )

    # log10 gives diminishing returns for very large review counts.
    volume = math.log10(count + 1)
    score = volume * (rating - weights.review_min_rating) * weights.review_scale
    return ScoreFactor(
        score=score,
        reason=f"Rated {rating:.1f} from {count} reviews",
        applicable=True,
    )

"""Ranking pipeline: validate -> deduplicate -> score -> sort.

Sort order: total score desc, then rating desc, review count desc, and
finally identifier asc so equal candidates always land in the same order.
Missing rating or review count sorts below any present value.
"""

import logging
from collections.abc import Iterable

from magnifico.core.config import ScoringWeights
from magnifico.core.errors import InvalidCandidate
from magnifico.core.schemas import Candidate, ScoredPlace, Viewport
from magnifico.pipeline.scorer import score_place

logger = logging.getLogger(__name__)


class DeduplicationFilter:
    """Drop repeated identifiers, keeping the first occurrence.

    Provider pagination can overlap, so the same place may show up twice in
    one response. Stateless between calls.
    """

    def __call__(self, candidates: Iterable[Candidate]) -> list[Candidate]:
        seen: set[str] = set()
        result: list[Candidate] = []
        for c in candidates:
            if c.id not in seen:
                seen.add(c.id)
                result.append(c)
        return result


def require_identifier(candidate: Candidate) -> Candidate:
    """Return the candidate, or raise InvalidCandidate if it has no usable id."""
    if not candidate.id.strip():
        msg = f"candidate '{candidate.name}' has no identifier"
        raise InvalidCandidate(msg)
    return candidate


def valid_candidates(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Keep candidates with an identifier; invalid ones are dropped, not raised."""
    result: list[Candidate] = []
    for c in candidates:
        try:
            result.append(require_identifier(c))
        except InvalidCandidate as e:
            logger.debug("Dropping invalid candidate: %s", e)
    return result


def sort_key(place: ScoredPlace) -> tuple[float, float, int, str]:
    c = place.candidate
    rating = c.rating if c.rating is not None else -1.0
    reviews = c.review_count if c.review_count is not None else -1
    return (-place.total_score, -rating, -reviews, c.id)


def rank(
    candidates: Iterable[Candidate],
    weights: ScoringWeights,
    viewport: Viewport | None = None,
) -> list[ScoredPlace]:
    """Rank raw candidates into a new, fully ordered list of ScoredPlace.

    Args:
        candidates: Raw provider records, in any order, possibly repeated.
        weights: Weights for the category being ranked.
        viewport: Request viewport, forwarded to location scoring.

    Returns:
        One ScoredPlace per distinct identifier, best first.
    """
    raw = list(candidates)
    unique = DeduplicationFilter()(valid_candidates(raw))
    if len(unique) != len(raw):
        logger.debug("Ranker: %d raw -> %d unique valid candidates", len(raw), len(unique))

    scored = [score_place(c, weights, viewport) for c in unique]
    scored.sort(key=sort_key)
    return scored

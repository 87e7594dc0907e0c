from __future__ import annotations

from typing import Optional, Sequence

from packages.cluster_matching.config import DEFAULT_CONFIG, MatchingConfig
from packages.cluster_matching.errors import InvalidInputError
from packages.cluster_matching.score import confidence_for, similarity
from packages.cluster_matching.types import MatchSuggestion, PlaceRecord, PointOfInterest


def _require_name(value: object, owner: str) -> str:
    if not isinstance(value, str):
        raise InvalidInputError(f"{owner} has no usable name (got {type(value).__name__})")
    return value


def find_best_match(
    poi: PointOfInterest,
    candidates: Sequence[PlaceRecord],
    config: Optional[MatchingConfig] = None,
) -> Optional[MatchSuggestion]:
    cfg = config or DEFAULT_CONFIG
    poi_name = _require_name(poi.name, f"poi {poi.poi_id!r}")

    best: Optional[PlaceRecord] = None
    best_score = 0.0
    for candidate in candidates:
        candidate_name = _require_name(candidate.name, f"place record {candidate.place_id!r}")
        score = similarity(poi_name, candidate_name)
        # Strict ">" keeps the first candidate on equal scores.
        if score < cfg.min_suggestion_threshold:
            continue
        if best is None or score > best_score:
            best = candidate
            best_score = score

    if best is None:
        return None
    return MatchSuggestion(candidate=best, score=best_score, confidence=confidence_for(best_score, cfg))

from __future__ import annotations

from typing import Optional

from packages.cluster_matching.config import DEFAULT_CONFIG, MatchingConfig
from packages.cluster_matching.normalize import normalize_name
from packages.cluster_matching.types import Confidence


CONTAINMENT_FLOOR = 0.85
CONTAINMENT_SPAN = 0.10


def levenshtein_distance(left: str, right: str) -> int:
    if len(left) < len(right):
        left, right = right, left
    previous = list(range(len(right) + 1))
    for i, left_ch in enumerate(left, start=1):
        current = [i]
        for j, right_ch in enumerate(right, start=1):
            cost = 0 if left_ch == right_ch else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def similarity(left: str, right: str) -> float:
    """Score two place names in [0, 1].

    Exact and containment matches are checked before edit distance so that a
    short name fully contained in a longer one ("Teide" / "Pico del Teide")
    is not penalised for the extra words.
    """
    norm_left = normalize_name(left)
    norm_right = normalize_name(right)

    if norm_left == norm_right:
        return 1.0

    if norm_left in norm_right or norm_right in norm_left:
        shorter = min(len(norm_left), len(norm_right))
        longer = max(len(norm_left), len(norm_right))
        return CONTAINMENT_FLOOR + (shorter / longer) * CONTAINMENT_SPAN

    max_len = max(len(norm_left), len(norm_right))
    if max_len == 0:
        return 0.0
    distance = levenshtein_distance(norm_left, norm_right)
    return max(0.0, 1.0 - distance / max_len)


def confidence_for(score: float, config: Optional[MatchingConfig] = None) -> Confidence:
    cfg = config or DEFAULT_CONFIG
    if score >= cfg.high_confidence_threshold:
        return "high"
    if score >= cfg.medium_confidence_threshold:
        return "medium"
    return "low"

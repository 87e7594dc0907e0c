from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from packages.cluster_matching.config import DEFAULT_CONFIG, MatchingConfig
from packages.cluster_matching.match import find_best_match
from packages.cluster_matching.types import (
    AssignedTo,
    ClusterAssignment,
    PlaceRecord,
    PointOfInterest,
    Unassigned,
)


logger = logging.getLogger(__name__)


def distinct_cluster_ids(candidates: Sequence[PlaceRecord]) -> List[str]:
    seen: Dict[str, None] = {}
    for candidate in candidates:
        seen.setdefault(candidate.cluster_id, None)
    return list(seen)


def auto_assign_pois(
    pois: Sequence[PointOfInterest],
    candidates: Sequence[PlaceRecord],
    config: Optional[MatchingConfig] = None,
) -> ClusterAssignment:
    """Place each POI into the cluster of its best-matching place record.

    Every cluster present in ``candidates`` gets a bucket, even an empty one.
    POIs whose best score is below the auto-match threshold stay unassigned,
    with the suggestion attached when one cleared the suggestion floor.
    """
    cfg = config or DEFAULT_CONFIG
    cluster_ids = distinct_cluster_ids(candidates)
    clusters: Dict[str, List[AssignedTo]] = {cluster_id: [] for cluster_id in cluster_ids}
    unassigned: List[Unassigned] = []

    logger.info(
        f"auto-matching {len(pois)} poi(s) against {len(candidates)} place record(s) "
        f"in {len(cluster_ids)} cluster(s)"
    )

    for poi in pois:
        suggestion = find_best_match(poi, candidates, cfg)
        if suggestion is not None and suggestion.score >= cfg.auto_match_threshold:
            place = suggestion.candidate
            clusters[place.cluster_id].append(
                AssignedTo(
                    cluster_id=place.cluster_id,
                    poi=poi,
                    place=place,
                    suggestion=suggestion,
                    auto_assigned=True,
                )
            )
            logger.debug(f"{poi.name!r} -> {place.name!r} in {place.cluster_name!r} ({suggestion.score:.2f})")
            continue

        unassigned.append(Unassigned(poi=poi, suggestion=suggestion))
        if suggestion is not None:
            logger.debug(
                f"{poi.name!r} left unassigned, closest {suggestion.candidate.name!r} ({suggestion.score:.2f})"
            )
        else:
            logger.debug(f"{poi.name!r} left unassigned, no suggestion")

    assigned_count = len(pois) - len(unassigned)
    logger.info(f"auto-matched {assigned_count}/{len(pois)} poi(s)")
    return ClusterAssignment(unassigned=unassigned, clusters=clusters)

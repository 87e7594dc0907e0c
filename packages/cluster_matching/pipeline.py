from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from packages.cluster_matching.assign import auto_assign_pois, distinct_cluster_ids
from packages.cluster_matching.config import MatchingConfig
from packages.cluster_matching.stats import compute_stats
from packages.cluster_matching.types import (
    AssignedPOI,
    AssignedTo,
    ClusterAssignment,
    ClusterMetadata,
    MatchStats,
    PlaceRecord,
    PointOfInterest,
)


@dataclass
class MatchingRun:
    assignment: ClusterAssignment
    stats: MatchStats
    clusters_metadata: List[ClusterMetadata] = field(default_factory=list)
    place_records_count: int = 0


def metadata_from_candidates(candidates: Sequence[PlaceRecord]) -> List[ClusterMetadata]:
    names: Dict[str, str] = {}
    counts: Dict[str, int] = {}
    for candidate in candidates:
        names.setdefault(candidate.cluster_id, candidate.cluster_name)
        counts[candidate.cluster_id] = counts.get(candidate.cluster_id, 0) + 1
    return [
        ClusterMetadata(cluster_id=cluster_id, cluster_name=names[cluster_id], place_count=counts[cluster_id])
        for cluster_id in distinct_cluster_ids(candidates)
    ]


def run_matching(
    pois: Sequence[PointOfInterest],
    candidates: Sequence[PlaceRecord],
    clusters_metadata: Optional[Sequence[ClusterMetadata]] = None,
    config: Optional[MatchingConfig] = None,
) -> MatchingRun:
    assignment = auto_assign_pois(pois, candidates, config)
    metadata = list(clusters_metadata) if clusters_metadata is not None else metadata_from_candidates(candidates)
    # Catalog clusters without any place still need a bucket editors can drop POIs into.
    for item in metadata:
        assignment.clusters.setdefault(item.cluster_id, [])
    return MatchingRun(
        assignment=assignment,
        stats=compute_stats(assignment),
        clusters_metadata=metadata,
        place_records_count=len(candidates),
    )


def annotate_selection(
    selection: Sequence[Dict[str, Any]],
    assignment: ClusterAssignment,
    clusters_metadata: Sequence[ClusterMetadata],
) -> List[Dict[str, Any]]:
    """Copy the editor's POI selection with the outcome of matching on each entry."""
    by_poi_id: Dict[str, AssignedPOI] = {item.poi.poi_id: item for item in assignment.entries()}
    names = {item.cluster_id: item.cluster_name for item in clusters_metadata}

    annotated: List[Dict[str, Any]] = []
    for entry in selection:
        item = by_poi_id.get(str(entry.get("poi_id")))
        if item is None:
            annotated.append(dict(entry))
            continue
        cluster_id = item.cluster_id if isinstance(item, AssignedTo) else None
        place = item.place if isinstance(item, AssignedTo) else None
        annotated.append(
            {
                **entry,
                "cluster_id": cluster_id,
                "cluster_name": names.get(cluster_id) if cluster_id else None,
                "place_instance_id": place.place_id if place else None,
                "matched_automatically": item.auto_assigned,
                "confidence": item.suggestion.confidence if item.suggestion else None,
                "score": item.suggestion.score if item.suggestion else None,
            }
        )
    return annotated

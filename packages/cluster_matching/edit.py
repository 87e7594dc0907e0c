from __future__ import annotations

from typing import Optional, Set
from uuid import uuid4

from packages.cluster_matching.errors import InvalidInputError, PoiNotFoundError, UnknownClusterError
from packages.cluster_matching.types import (
    AssignedPOI,
    AssignedTo,
    ClusterAssignment,
    ClusterMetadata,
    Unassigned,
)


def check_conservation(assignment: ClusterAssignment) -> None:
    seen: Set[str] = set()
    for item in assignment.entries():
        poi_id = item.poi.poi_id
        if poi_id in seen:
            raise InvalidInputError(f"poi {poi_id!r} appears more than once in the assignment")
        seen.add(poi_id)


def locate_poi(assignment: ClusterAssignment, poi_id: str) -> Optional[str]:
    """Return the cluster id holding ``poi_id``, ``None`` when it is unassigned."""
    if any(item.poi.poi_id == poi_id for item in assignment.unassigned):
        return None
    for cluster_id, items in assignment.clusters.items():
        if any(item.poi.poi_id == poi_id for item in items):
            return cluster_id
    raise PoiNotFoundError(f"poi {poi_id!r} not found in assignment")


def move_poi(assignment: ClusterAssignment, poi_id: str, target_cluster_id: Optional[str]) -> ClusterAssignment:
    if target_cluster_id is not None and target_cluster_id not in assignment.clusters:
        raise UnknownClusterError(f"cluster {target_cluster_id!r} does not exist")

    source_cluster_id = locate_poi(assignment, poi_id)
    result = assignment.copy()
    if source_cluster_id == target_cluster_id:
        return result

    entry: AssignedPOI
    if source_cluster_id is None:
        index = next(i for i, item in enumerate(result.unassigned) if item.poi.poi_id == poi_id)
        entry = result.unassigned.pop(index)
    else:
        bucket = result.clusters[source_cluster_id]
        index = next(i for i, item in enumerate(bucket) if item.poi.poi_id == poi_id)
        entry = bucket.pop(index)

    if target_cluster_id is None:
        result.unassigned.append(Unassigned(poi=entry.poi, suggestion=entry.suggestion))
        return result

    place = None
    if entry.suggestion is not None and entry.suggestion.candidate.cluster_id == target_cluster_id:
        place = entry.suggestion.candidate
    result.clusters[target_cluster_id].append(
        AssignedTo(
            cluster_id=target_cluster_id,
            poi=entry.poi,
            place=place,
            suggestion=entry.suggestion,
            auto_assigned=False,
        )
    )
    return result


def add_cluster(assignment: ClusterAssignment, cluster_id: str) -> ClusterAssignment:
    result = assignment.copy()
    result.clusters.setdefault(cluster_id, [])
    return result


def new_manual_cluster(cluster_name: str) -> ClusterMetadata:
    name = str(cluster_name or "").strip()
    if not name:
        raise InvalidInputError("cluster name is required")
    return ClusterMetadata(
        cluster_id=f"manual_{uuid4().hex[:12]}",
        cluster_name=name,
        place_count=0,
        is_manual=True,
    )

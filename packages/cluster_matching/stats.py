from __future__ import annotations

from typing import Dict

from packages.cluster_matching.types import ClusterAssignment, MatchStats


def compute_stats(assignment: ClusterAssignment) -> MatchStats:
    assigned = 0
    auto_matched = 0
    manual_matched = 0
    by_cluster: Dict[str, int] = {}

    for cluster_id, items in assignment.clusters.items():
        assigned += len(items)
        by_cluster[cluster_id] = len(items)
        for item in items:
            if item.auto_assigned:
                auto_matched += 1
            else:
                manual_matched += 1

    unassigned = len(assignment.unassigned)
    return MatchStats(
        total_pois=assigned + unassigned,
        assigned=assigned,
        unassigned=unassigned,
        auto_matched=auto_matched,
        manual_matched=manual_matched,
        by_cluster=by_cluster,
    )

"""Conversion between matcher types and the persisted assignment document.

The document keeps the shape read by the editorial tools downstream: POI
fields ``poi_id``/``nom``/``type``/``article_source``, place records as
``place_instance`` and the ``"unassigned"`` string standing in for "no
cluster". That sentinel only exists here; in memory it is the ``Unassigned``
variant.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from packages.cluster_matching.edit import check_conservation
from packages.cluster_matching.errors import InvalidInputError
from packages.cluster_matching.types import (
    AssignedPOI,
    AssignedTo,
    ClusterAssignment,
    ClusterMetadata,
    Coordinates,
    MatchStats,
    MatchSuggestion,
    PlaceRecord,
    PointOfInterest,
    Unassigned,
)


UNASSIGNED = "unassigned"
_CONFIDENCES = ("high", "medium", "low")


def _require(data: Dict[str, Any], key: str, owner: str) -> Any:
    value = data.get(key)
    if value is None:
        raise InvalidInputError(f"{owner} is missing {key!r}")
    return value


def _as_dict(value: Any, owner: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise InvalidInputError(f"{owner} must be an object")
    return value


def poi_to_document(poi: PointOfInterest) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "poi_id": poi.poi_id,
        "nom": poi.name,
        "type": poi.category,
        "article_source": poi.source_article,
    }
    if poi.coordinates is not None:
        coords: Dict[str, Any] = {"lat": poi.coordinates.lat, "lon": poi.coordinates.lon}
        if poi.coordinates.display_name:
            coords["display_name"] = poi.coordinates.display_name
        doc["coordinates"] = coords
    return doc


def poi_from_document(data: Any) -> PointOfInterest:
    data = _as_dict(data, "poi")
    poi_id = str(_require(data, "poi_id", "poi"))
    name = data.get("nom")
    if not isinstance(name, str):
        raise InvalidInputError(f"poi {poi_id!r} has no usable 'nom'")
    coordinates = None
    raw_coords = data.get("coordinates")
    if raw_coords:
        raw_coords = _as_dict(raw_coords, f"poi {poi_id!r} coordinates")
        try:
            coordinates = Coordinates(
                lat=float(_require(raw_coords, "lat", f"poi {poi_id!r} coordinates")),
                lon=float(_require(raw_coords, "lon", f"poi {poi_id!r} coordinates")),
                display_name=raw_coords.get("display_name"),
            )
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"poi {poi_id!r} has invalid coordinates") from exc
    return PointOfInterest(
        poi_id=poi_id,
        name=name,
        category=str(data.get("type") or ""),
        source_article=str(data.get("article_source") or ""),
        coordinates=coordinates,
    )


def place_to_document(place: PlaceRecord) -> Dict[str, Any]:
    return {
        "place_instance_id": place.place_id,
        "place_name": place.name,
        "place_type": place.category,
        "cluster_id": place.cluster_id,
        "cluster_name": place.cluster_name,
    }


def place_from_document(data: Any) -> PlaceRecord:
    data = _as_dict(data, "place_instance")
    place_id = str(_require(data, "place_instance_id", "place_instance"))
    name = data.get("place_name")
    if not isinstance(name, str):
        raise InvalidInputError(f"place_instance {place_id!r} has no usable 'place_name'")
    return PlaceRecord(
        place_id=place_id,
        name=name,
        category=str(data.get("place_type") or ""),
        cluster_id=str(_require(data, "cluster_id", f"place_instance {place_id!r}")),
        cluster_name=str(data.get("cluster_name") or ""),
    )


def _suggestion_to_document(suggestion: MatchSuggestion) -> Dict[str, Any]:
    return {
        "place_instance": place_to_document(suggestion.candidate),
        "score": suggestion.score,
        "confidence": suggestion.confidence,
    }


def _suggestion_from_document(data: Any) -> Optional[MatchSuggestion]:
    if data is None:
        return None
    data = _as_dict(data, "suggested_match")
    confidence = data.get("confidence")
    if confidence not in _CONFIDENCES:
        raise InvalidInputError(f"suggested_match has invalid confidence {confidence!r}")
    try:
        score = float(_require(data, "score", "suggested_match"))
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("suggested_match score must be a number") from exc
    if not 0.0 <= score <= 1.0:
        raise InvalidInputError(f"suggested_match score {score} is outside [0, 1]")
    return MatchSuggestion(
        candidate=place_from_document(_require(data, "place_instance", "suggested_match")),
        score=score,
        confidence=confidence,
    )


def item_to_document(item: AssignedPOI) -> Dict[str, Any]:
    doc: Dict[str, Any] = {"poi": poi_to_document(item.poi)}
    if isinstance(item, AssignedTo):
        doc["current_cluster_id"] = item.cluster_id
        if item.place is not None:
            doc["place_instance_id"] = item.place.place_id
    else:
        doc["current_cluster_id"] = UNASSIGNED
    if item.suggestion is not None:
        doc["suggested_match"] = _suggestion_to_document(item.suggestion)
    doc["matched_automatically"] = item.auto_assigned
    return doc


def _unassigned_from_document(data: Any) -> Unassigned:
    data = _as_dict(data, "assignment item")
    poi = poi_from_document(_require(data, "poi", "assignment item"))
    current = data.get("current_cluster_id", UNASSIGNED)
    if current != UNASSIGNED:
        raise InvalidInputError(f"poi {poi.poi_id!r} is listed as unassigned but points at {current!r}")
    return Unassigned(poi=poi, suggestion=_suggestion_from_document(data.get("suggested_match")))


def _assigned_from_document(data: Any, bucket: str) -> AssignedTo:
    data = _as_dict(data, "assignment item")
    poi = poi_from_document(_require(data, "poi", "assignment item"))
    suggestion = _suggestion_from_document(data.get("suggested_match"))
    current = data.get("current_cluster_id", bucket)
    if current != bucket:
        raise InvalidInputError(f"poi {poi.poi_id!r} is listed under {bucket!r} but points at {current!r}")
    place = None
    place_id = data.get("place_instance_id")
    if place_id:
        # The matched place is always the suggested candidate.
        if suggestion is None or suggestion.candidate.place_id != str(place_id):
            raise InvalidInputError(
                f"poi {poi.poi_id!r} points at place {place_id!r} which is not its suggested match"
            )
        place = suggestion.candidate
    return AssignedTo(
        cluster_id=bucket,
        poi=poi,
        place=place,
        suggestion=suggestion,
        auto_assigned=bool(data.get("matched_automatically", False)),
    )


def assignment_to_document(assignment: ClusterAssignment) -> Dict[str, Any]:
    return {
        "unassigned": [item_to_document(item) for item in assignment.unassigned],
        "clusters": {
            cluster_id: [item_to_document(item) for item in items]
            for cluster_id, items in assignment.clusters.items()
        },
    }


def assignment_from_document(data: Any) -> ClusterAssignment:
    data = _as_dict(data, "assignment")
    raw_unassigned = data.get("unassigned") or []
    raw_clusters = data.get("clusters") or {}
    if not isinstance(raw_unassigned, list):
        raise InvalidInputError("assignment.unassigned must be a list")
    raw_clusters = _as_dict(raw_clusters, "assignment.clusters")

    unassigned: List[Unassigned] = [_unassigned_from_document(raw) for raw in raw_unassigned]

    clusters: Dict[str, List[AssignedTo]] = {}
    for cluster_id, raw_items in raw_clusters.items():
        if cluster_id == UNASSIGNED:
            raise InvalidInputError(f"{UNASSIGNED!r} cannot be used as a cluster id")
        if not isinstance(raw_items, list):
            raise InvalidInputError(f"assignment.clusters[{cluster_id!r}] must be a list")
        clusters[cluster_id] = [_assigned_from_document(raw, cluster_id) for raw in raw_items]

    assignment = ClusterAssignment(unassigned=unassigned, clusters=clusters)
    check_conservation(assignment)
    return assignment


def stats_to_document(stats: MatchStats) -> Dict[str, Any]:
    return {
        "total_pois": stats.total_pois,
        "assigned": stats.assigned,
        "unassigned": stats.unassigned,
        "auto_matched": stats.auto_matched,
        "manual_matched": stats.manual_matched,
        "by_cluster": dict(stats.by_cluster),
    }


def metadata_to_document(metadata: ClusterMetadata) -> Dict[str, Any]:
    return asdict(metadata)


def metadata_from_document(data: Any) -> ClusterMetadata:
    data = _as_dict(data, "cluster metadata")
    return ClusterMetadata(
        cluster_id=str(_require(data, "cluster_id", "cluster metadata")),
        cluster_name=str(data.get("cluster_name") or ""),
        place_count=int(data.get("place_count") or 0),
        is_manual=bool(data.get("is_manual", False)),
    )

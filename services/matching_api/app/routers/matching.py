from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Cookie, Header, HTTPException

from packages.cluster_matching.codec import (
    UNASSIGNED,
    assignment_from_document,
    assignment_to_document,
    metadata_from_document,
    metadata_to_document,
    poi_from_document,
    stats_to_document,
)
from packages.cluster_matching.config import MatchingConfig
from packages.cluster_matching.edit import add_cluster, check_conservation, move_poi, new_manual_cluster
from packages.cluster_matching.errors import (
    CandidateSourceError,
    InvalidConfigError,
    InvalidInputError,
    PoiNotFoundError,
    UnknownClusterError,
)
from packages.cluster_matching.pipeline import annotate_selection, run_matching
from packages.cluster_matching.region_lovers import RegionLoversClient, parse_region_payload
from packages.cluster_matching.stats import compute_stats
from packages.cluster_matching.types import ClusterAssignment
from services.matching_api.app.models.matching_models import (
    CreateClusterRequest,
    CreateClusterResponse,
    GenerateMatchingRequest,
    GenerateMatchingResponse,
    MatchingRecordResponse,
    MovePoiRequest,
    SaveMatchingRequest,
    SaveMatchingResponse,
)
from services.matching_api.app.repositories.matching_repository import REPOSITORY

router = APIRouter()
logger = logging.getLogger(__name__)


def _bearer_token(authorization: Optional[str], access_token: Optional[str]) -> str:
    if access_token:
        return access_token
    value = str(authorization or "").strip()
    if value.lower().startswith("bearer "):
        return value[7:].strip()
    return value


def _require_record(guide_id: str) -> Dict[str, Any]:
    record = REPOSITORY.get_record(guide_id)
    if not record:
        raise HTTPException(status_code=404, detail="cluster assignment not found")
    return record


def _stored_assignment(record: Dict[str, Any]) -> ClusterAssignment:
    try:
        return assignment_from_document(record.get("assignment") or {})
    except InvalidInputError as exc:
        raise HTTPException(status_code=409, detail=f"stored assignment is invalid: {exc}") from exc


def _persist(guide_id: str, record: Dict[str, Any], assignment: ClusterAssignment) -> Dict[str, Any]:
    record["assignment"] = assignment_to_document(assignment)
    record["stats"] = stats_to_document(compute_stats(assignment))
    return REPOSITORY.save_record(guide_id, record)


@router.post("/guides/{guide_id}/matching", response_model=GenerateMatchingResponse)
def generate_matching(
    guide_id: str,
    payload: GenerateMatchingRequest,
    authorization: Optional[str] = Header(default=None),
    access_token: Optional[str] = Cookie(default=None, alias="accessToken"),
) -> GenerateMatchingResponse:
    try:
        config = MatchingConfig.from_env()
        pois = [poi_from_document(item) for item in payload.pois]
        if payload.clusters is not None:
            candidates, clusters_metadata = parse_region_payload(payload.clusters)
        elif payload.region_id:
            client = RegionLoversClient()
            candidates, clusters_metadata = client.fetch_candidates(
                payload.region_id, _bearer_token(authorization, access_token)
            )
        else:
            raise HTTPException(status_code=400, detail="either clusters or region_id is required")
        run = run_matching(pois, candidates, clusters_metadata, config)
        check_conservation(run.assignment)
    except CandidateSourceError as exc:
        status_code = 401 if exc.status_code == 401 else 502
        raise HTTPException(status_code=status_code, detail={"message": exc.message, "upstream": exc.body}) from exc
    except (InvalidInputError, InvalidConfigError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(f"guide {guide_id}: {run.stats.assigned}/{run.stats.total_pois} poi(s) auto-assigned")
    saved = REPOSITORY.save_record(
        guide_id,
        {
            "region_id": payload.region_id,
            "assignment": assignment_to_document(run.assignment),
            "stats": stats_to_document(run.stats),
            "clusters_metadata": [metadata_to_document(item) for item in run.clusters_metadata],
            "place_instances_count": run.place_records_count,
        },
    )
    return GenerateMatchingResponse(
        **saved,
        success=True,
        pois=annotate_selection(payload.pois, run.assignment, run.clusters_metadata),
    )


@router.get("/guides/{guide_id}/matching", response_model=MatchingRecordResponse)
def get_matching(guide_id: str) -> MatchingRecordResponse:
    record = REPOSITORY.get_record(guide_id)
    if not record:
        return MatchingRecordResponse(guide_id=guide_id)
    return MatchingRecordResponse(**record)


@router.post("/guides/{guide_id}/matching/save", response_model=SaveMatchingResponse)
def save_matching(guide_id: str, payload: SaveMatchingRequest) -> SaveMatchingResponse:
    record = _require_record(guide_id)
    try:
        assignment = assignment_from_document(payload.assignment)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    saved = _persist(guide_id, record, assignment)
    return SaveMatchingResponse(success=True, stats=saved["stats"])


@router.post("/guides/{guide_id}/matching/move", response_model=MatchingRecordResponse)
def move_matching_poi(guide_id: str, payload: MovePoiRequest) -> MatchingRecordResponse:
    record = _require_record(guide_id)
    target = None if payload.target_cluster_id in (None, UNASSIGNED) else payload.target_cluster_id
    try:
        assignment = move_poi(_stored_assignment(record), payload.poi_id, target)
    except PoiNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except UnknownClusterError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return MatchingRecordResponse(**_persist(guide_id, record, assignment))


@router.post("/guides/{guide_id}/clusters", response_model=CreateClusterResponse)
def create_cluster(guide_id: str, payload: CreateClusterRequest) -> CreateClusterResponse:
    try:
        cluster = new_manual_cluster(payload.cluster_name)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    record = REPOSITORY.get_record(guide_id) or {"clusters_metadata": [], "place_instances_count": 0}
    assignment = add_cluster(_stored_assignment(record), cluster.cluster_id)
    metadata: List[Dict[str, Any]] = [
        metadata_to_document(metadata_from_document(item)) for item in record.get("clusters_metadata") or []
    ]
    metadata.append(metadata_to_document(cluster))
    record["clusters_metadata"] = metadata
    _persist(guide_id, record, assignment)
    logger.info(f"guide {guide_id}: manual cluster {cluster.cluster_name!r} created as {cluster.cluster_id}")
    return CreateClusterResponse(success=True, cluster=metadata_to_document(cluster))

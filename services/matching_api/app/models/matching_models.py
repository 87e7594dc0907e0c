from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ClusterMetadataModel(BaseModel):
    cluster_id: str
    cluster_name: str
    place_count: int = Field(default=0, ge=0)
    is_manual: bool = False


class MatchStatsModel(BaseModel):
    total_pois: int = Field(ge=0)
    assigned: int = Field(ge=0)
    unassigned: int = Field(ge=0)
    auto_matched: int = Field(ge=0)
    manual_matched: int = Field(ge=0)
    by_cluster: Dict[str, int] = Field(default_factory=dict)


class GenerateMatchingRequest(BaseModel):
    pois: List[Dict[str, Any]] = Field(min_length=1, max_length=2000)
    region_id: Optional[str] = Field(default=None, min_length=1, max_length=128)
    clusters: Optional[Any] = None


class MatchingRecordResponse(BaseModel):
    guide_id: str
    assignment: Optional[Dict[str, Any]] = None
    stats: Optional[MatchStatsModel] = None
    clusters_metadata: List[ClusterMetadataModel] = Field(default_factory=list)
    place_instances_count: int = 0
    region_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class GenerateMatchingResponse(MatchingRecordResponse):
    success: bool = True
    pois: List[Dict[str, Any]] = Field(default_factory=list)


class SaveMatchingRequest(BaseModel):
    assignment: Dict[str, Any]


class SaveMatchingResponse(BaseModel):
    success: bool
    stats: MatchStatsModel


class MovePoiRequest(BaseModel):
    poi_id: str = Field(min_length=1, max_length=128)
    target_cluster_id: Optional[str] = Field(default=None, min_length=1, max_length=128)


class CreateClusterRequest(BaseModel):
    cluster_name: str = Field(min_length=1, max_length=255)


class CreateClusterResponse(BaseModel):
    success: bool
    cluster: ClusterMetadataModel

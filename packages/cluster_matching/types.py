from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Union


Confidence = Literal["high", "medium", "low"]


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float
    display_name: Optional[str] = None


@dataclass(frozen=True)
class PointOfInterest:
    poi_id: str
    name: str
    category: str = ""
    source_article: str = ""
    coordinates: Optional[Coordinates] = None


@dataclass(frozen=True)
class PlaceRecord:
    place_id: str
    name: str
    category: str
    cluster_id: str
    cluster_name: str


@dataclass(frozen=True)
class MatchSuggestion:
    candidate: PlaceRecord
    score: float
    confidence: Confidence


@dataclass(frozen=True)
class Unassigned:
    poi: PointOfInterest
    suggestion: Optional[MatchSuggestion] = None

    @property
    def auto_assigned(self) -> bool:
        return False


@dataclass(frozen=True)
class AssignedTo:
    cluster_id: str
    poi: PointOfInterest
    place: Optional[PlaceRecord] = None
    suggestion: Optional[MatchSuggestion] = None
    auto_assigned: bool = True


AssignedPOI = Union[Unassigned, AssignedTo]


@dataclass
class ClusterAssignment:
    unassigned: List[Unassigned] = field(default_factory=list)
    clusters: Dict[str, List[AssignedTo]] = field(default_factory=dict)

    def entries(self) -> List[AssignedPOI]:
        items: List[AssignedPOI] = list(self.unassigned)
        for bucket in self.clusters.values():
            items.extend(bucket)
        return items

    def copy(self) -> "ClusterAssignment":
        return ClusterAssignment(
            unassigned=list(self.unassigned),
            clusters={key: list(value) for key, value in self.clusters.items()},
        )


@dataclass(frozen=True)
class MatchStats:
    total_pois: int
    assigned: int
    unassigned: int
    auto_matched: int
    manual_matched: int
    by_cluster: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ClusterMetadata:
    cluster_id: str
    cluster_name: str
    place_count: int = 0
    is_manual: bool = False

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from packages.cluster_matching.errors import CandidateSourceError, InvalidInputError
from packages.cluster_matching.types import ClusterMetadata, PlaceRecord


logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api-prod.regionlovers.ai"
UNNAMED = "Sans nom"
DEFAULT_PLACE_TYPE = "autre"


def _first_present(payload: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def _find_by_key(items: Any, key: str, value: str) -> Optional[Dict[str, Any]]:
    if not isinstance(items, list):
        return None
    for item in items:
        if isinstance(item, dict) and item.get(key) == value:
            return item
    return None


def _draft_display_name(draft: Dict[str, Any]) -> str:
    # Drafts keep the edited name in blocks > general_info > general_info_general > name.
    block = _find_by_key(draft.get("blocks"), "block_id", "general_info")
    section = _find_by_key(block.get("sections") if block else None, "section_id", "general_info_general")
    name_field = _find_by_key(section.get("fields") if section else None, "field_id", "name")
    if name_field and isinstance(name_field.get("value"), str) and name_field["value"]:
        return name_field["value"]
    return str(_first_present(draft, ("place_name", "name")) or UNNAMED)


def _cluster_list(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict) and isinstance(payload.get("clusters"), list):
        items = payload["clusters"]
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        items = payload["data"]
    else:
        return []
    return [item for item in items if isinstance(item, dict)]


def parse_region_payload(payload: Any) -> Tuple[List[PlaceRecord], List[ClusterMetadata]]:
    records: List[PlaceRecord] = []
    metadata: List[ClusterMetadata] = []

    for cluster in _cluster_list(payload):
        cluster_id = _first_present(cluster, ("id", "_id", "cluster_id"))
        if cluster_id is None:
            raise InvalidInputError("cluster in region payload has no id")
        cluster_id = str(cluster_id)
        cluster_name = str(_first_present(cluster, ("name", "cluster_name")) or UNNAMED)
        drafts = cluster.get("drafts") or cluster.get("place_instances") or []
        drafts = [draft for draft in drafts if isinstance(draft, dict)]

        for draft in drafts:
            place_id = _first_present(draft, ("_id", "id"))
            if place_id is None:
                raise InvalidInputError(f"draft in cluster {cluster_id!r} has no id")
            records.append(
                PlaceRecord(
                    place_id=str(place_id),
                    name=_draft_display_name(draft),
                    category=str(_first_present(draft, ("place_type", "type")) or DEFAULT_PLACE_TYPE),
                    cluster_id=cluster_id,
                    cluster_name=cluster_name,
                )
            )
        metadata.append(ClusterMetadata(cluster_id=cluster_id, cluster_name=cluster_name, place_count=len(drafts)))

    logger.info(f"parsed {len(records)} place record(s) from {len(metadata)} cluster(s)")
    return records, metadata


class RegionLoversClient:
    def __init__(self, base_url: Optional[str] = None, timeout_sec: Optional[float] = None) -> None:
        self._base_url = (base_url or os.getenv("REGION_LOVERS_API_URL") or DEFAULT_API_URL).rstrip("/")
        self._timeout_sec = (
            timeout_sec if timeout_sec is not None else float(os.getenv("REGION_LOVERS_TIMEOUT_SEC", "10"))
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def region_url(self, region_id: str) -> str:
        return f"{self._base_url}/place-instance-drafts/region/{quote(str(region_id), safe='')}"

    def fetch_region(self, region_id: str, token: str) -> Any:
        if not str(token or "").strip():
            raise CandidateSourceError("missing bearer token for place catalog", status_code=401)

        request = Request(
            self.region_url(region_id),
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            method="GET",
        )
        try:
            with urlopen(request, timeout=self._timeout_sec) as resp:
                raw = resp.read().decode("utf-8")
        except HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
            logger.warning(f"place catalog returned {exc.code} for region {region_id}")
            raise CandidateSourceError(f"place catalog returned {exc.code}", status_code=exc.code, body=body) from exc
        except (URLError, TimeoutError, OSError) as exc:
            logger.warning(f"place catalog unreachable for region {region_id}: {exc.__class__.__name__}")
            raise CandidateSourceError(f"place catalog unreachable: {exc.__class__.__name__}") from exc

        try:
            return json.loads(raw) if raw else {}
        except json.JSONDecodeError as exc:
            raise CandidateSourceError("place catalog returned invalid JSON", body=raw[:500]) from exc

    def fetch_candidates(self, region_id: str, token: str) -> Tuple[List[PlaceRecord], List[ClusterMetadata]]:
        return parse_region_payload(self.fetch_region(region_id, token))

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from src.common.env_bootstrap import resolve_database_url


logger = logging.getLogger(__name__)


@dataclass
class _MemoryStore:
    records: dict[str, dict[str, Any]] = field(default_factory=dict)


class MatchingRepository:
    """Cluster assignment records keyed by guide id.

    Records always live in memory. When ``DATABASE_URL`` points at sqlite or
    postgresql they are also written to ``cluster_assignment`` and read back
    from there, so a restarted service sees the last saved state.
    """

    def __init__(self, database_url: str | None = None) -> None:
        if database_url is None:
            database_url = resolve_database_url()
        self._database_url = database_url
        self._memory = _MemoryStore()
        self._engine = None
        self._schema_ready = False

    def _db_enabled(self) -> bool:
        url = self._database_url or ""
        return url.startswith("postgresql") or url.startswith("sqlite")

    def _get_engine(self):
        if self._engine is None:
            from sqlalchemy import create_engine

            self._engine = create_engine(self._database_url)
        return self._engine

    def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        from sqlalchemy import text

        with self._get_engine().begin() as conn:
            conn.execute(
                text(
                    """
                    CREATE TABLE IF NOT EXISTS cluster_assignment (
                        guide_id VARCHAR(128) PRIMARY KEY,
                        record_json TEXT NOT NULL,
                        created_at VARCHAR(64) NOT NULL,
                        updated_at VARCHAR(64) NOT NULL
                    )
                    """
                )
            )
        self._schema_ready = True

    def _execute(self, sql: str, params: dict[str, Any]) -> bool:
        if not self._db_enabled():
            return False
        # Failures propagate: a record must never be reported saved when it is not.
        from sqlalchemy import text

        self._ensure_schema()
        with self._get_engine().begin() as conn:
            conn.execute(text(sql), params)
        return True

    def _query(self, sql: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        if not self._db_enabled():
            return []
        from sqlalchemy import text

        self._ensure_schema()
        with self._get_engine().begin() as conn:
            rows = conn.execute(text(sql), params).mappings().all()
        return [dict(item) for item in rows]

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    def get_record(self, guide_id: str) -> dict[str, Any] | None:
        if self._db_enabled():
            rows = self._query(
                "SELECT record_json FROM cluster_assignment WHERE guide_id = :guide_id",
                {"guide_id": guide_id},
            )
            if not rows:
                return None
            record = json.loads(rows[0]["record_json"])
            self._memory.records[guide_id] = record
            return json.loads(json.dumps(record))
        record = self._memory.records.get(guide_id)
        return json.loads(json.dumps(record)) if record is not None else None

    def save_record(self, guide_id: str, record: dict[str, Any]) -> dict[str, Any]:
        existing = self.get_record(guide_id)
        now_iso = self._now_iso()
        item = {
            **record,
            "guide_id": guide_id,
            "created_at": (existing or {}).get("created_at") or now_iso,
            "updated_at": now_iso,
        }
        item = json.loads(json.dumps(item, ensure_ascii=False))
        self._memory.records[guide_id] = item
        self._execute(
            """
            INSERT INTO cluster_assignment (guide_id, record_json, created_at, updated_at)
            VALUES (:guide_id, :record_json, :created_at, :updated_at)
            ON CONFLICT (guide_id)
            DO UPDATE SET record_json = EXCLUDED.record_json, updated_at = EXCLUDED.updated_at;
            """,
            {
                "guide_id": guide_id,
                "record_json": json.dumps(item, ensure_ascii=False),
                "created_at": item["created_at"],
                "updated_at": item["updated_at"],
            },
        )
        logger.info(f"saved cluster assignment for guide {guide_id}")
        return json.loads(json.dumps(item))

    def clear(self) -> None:
        self._memory.records.clear()
        self._execute("DELETE FROM cluster_assignment", {})


REPOSITORY = MatchingRepository()

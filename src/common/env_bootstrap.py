from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

ENV_FILES = (".env.local", ".env", "config/matching.env")


def _database_url_from_file(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    for line in path.read_text(encoding="utf-8").splitlines():
        name, sep, value = line.partition("=")
        if sep and name.strip() == "DATABASE_URL":
            return value.strip().strip("'\"")
    return None


def resolve_database_url(root: Path | None = None) -> str:
    """Return DATABASE_URL from the process env, else from the first project env file defining it."""
    current = str(os.getenv("DATABASE_URL") or "").strip()
    if current:
        return current
    root = root or Path(__file__).resolve().parents[2]
    for relative in ENV_FILES:
        found = _database_url_from_file(root / relative)
        if found:
            os.environ.setdefault("DATABASE_URL", found)
            return found
    return ""

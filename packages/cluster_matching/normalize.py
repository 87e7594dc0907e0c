from __future__ import annotations

import re
import unicodedata

from packages.cluster_matching.errors import InvalidInputError


_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")


def normalize_name(raw_name: str) -> str:
    if not isinstance(raw_name, str):
        raise InvalidInputError(f"name must be a string, got {type(raw_name).__name__}")
    text = raw_name.lower()
    # NFD splits accented letters into base letter + combining mark.
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _NON_ALNUM.sub("", text)
    return _SPACES.sub(" ", text).strip()

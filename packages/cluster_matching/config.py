from __future__ import annotations

import os
from dataclasses import dataclass

from packages.cluster_matching.errors import InvalidConfigError


_ENV_FIELDS = {
    "min_suggestion_threshold": "CLUSTER_MATCHING_MIN_SUGGESTION",
    "auto_match_threshold": "CLUSTER_MATCHING_AUTO_MATCH",
    "medium_confidence_threshold": "CLUSTER_MATCHING_MEDIUM_CONFIDENCE",
    "high_confidence_threshold": "CLUSTER_MATCHING_HIGH_CONFIDENCE",
}


@dataclass(frozen=True)
class MatchingConfig:
    min_suggestion_threshold: float = 0.30
    auto_match_threshold: float = 0.60
    medium_confidence_threshold: float = 0.75
    high_confidence_threshold: float = 0.90

    def validate(self) -> "MatchingConfig":
        for name in _ENV_FIELDS:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidConfigError(f"{name} must be in [0, 1], got {value}")
        if self.min_suggestion_threshold > self.auto_match_threshold:
            raise InvalidConfigError("min_suggestion_threshold must not exceed auto_match_threshold")
        if self.medium_confidence_threshold > self.high_confidence_threshold:
            raise InvalidConfigError("medium_confidence_threshold must not exceed high_confidence_threshold")
        return self

    @classmethod
    def from_env(cls) -> "MatchingConfig":
        values = {}
        for name, env_name in _ENV_FIELDS.items():
            raw = str(os.getenv(env_name) or "").strip()
            if not raw:
                continue
            try:
                values[name] = float(raw)
            except ValueError as exc:
                raise InvalidConfigError(f"{env_name} is not a number: {raw!r}") from exc
        return cls(**values).validate()


DEFAULT_CONFIG = MatchingConfig()

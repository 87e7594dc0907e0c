from __future__ import annotations


class MatchingError(Exception):
    """Base error for cluster matching."""


class InvalidInputError(MatchingError, ValueError):
    """Raised when a POI, place record or assignment document breaks its contract."""


class InvalidConfigError(MatchingError, ValueError):
    """Raised when matching thresholds are out of range or inconsistent."""


class PoiNotFoundError(MatchingError, KeyError):
    """Raised when a POI id is not present in an assignment."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "poi not found"


class UnknownClusterError(MatchingError):
    """Raised when a target cluster id has no bucket in the assignment."""


class CandidateSourceError(MatchingError):
    """Raised when the place catalog cannot supply candidates."""

    def __init__(self, message: str, status_code: int = 502, body: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body

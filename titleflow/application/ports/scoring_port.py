"""Port interface for the external scoring collaborator."""

from abc import ABC, abstractmethod
from typing import Any

from titleflow.domain.entities.suggestion import Suggestion


class ScoringUnavailable(Exception):
    """Transport-level failure: timeout, no credentials, malformed payload."""


class ScoringPort(ABC):
    @abstractmethod
    async def suggest(self, context: dict[str, Any]) -> Suggestion:
        """Pick one fulfiller for the assignment described by *context*.

        *context* is JSON-serialisable: {"assignment": {...}, "candidates": [...]}.
        The answer is untrusted; callers must validate the returned id.
        May be slow (seconds) and may raise ScoringUnavailable or any other error.
        """
        ...

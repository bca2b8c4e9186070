"""Suggestion — output of the external scoring collaborator."""

from dataclasses import dataclass, field


@dataclass
class Suggestion:
    fulfiller_id: str
    confidence: int
    factors: list[str] = field(default_factory=list)
    reason: str = ""
    model: str | None = None

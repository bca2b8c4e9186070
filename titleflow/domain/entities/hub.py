"""Hub entity — a requester-side branch that originates assignments."""

from dataclasses import dataclass


@dataclass
class Hub:
    id: str
    code: str
    name: str
    state: str
    district: str
    email: str | None = None

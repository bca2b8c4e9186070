"""Location and Actor value objects."""

from __future__ import annotations

from dataclasses import dataclass

from titleflow.domain.value_objects.enums import ActorRole


@dataclass(frozen=True)
class Location:
    """A structured address reduced to the fields allocation cares about."""

    state: str
    district: str
    address: str | None = None
    pincode: str | None = None

    def __post_init__(self) -> None:
        if not self.state or not self.state.strip():
            raise ValueError("Location state must not be empty")
        if not self.district or not self.district.strip():
            raise ValueError("Location district must not be empty")

    def describe(self) -> str:
        return f"{self.district}, {self.state}"


@dataclass(frozen=True)
class Actor:
    """Already-authenticated caller identity, trusted as claimed."""

    id: str
    role: ActorRole


SYSTEM_ACTOR = Actor(id="SYSTEM", role=ActorRole.SYSTEM)

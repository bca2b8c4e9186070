"""AuditEntry — one immutable record in an assignment's provenance."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from titleflow.domain.value_objects.enums import ActorRole, AuditAction


@dataclass(frozen=True)
class AuditEntry:
    timestamp: datetime
    action: AuditAction
    actor_id: str
    actor_role: ActorRole
    detail: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze the metadata mapping so the entry stays immutable end to end
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def __deepcopy__(self, memo):
        # mappingproxy cannot be deep-copied directly
        return replace(self, metadata=copy.deepcopy(dict(self.metadata), memo))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role.value,
            "detail": self.detail,
            "metadata": dict(self.metadata),
        }

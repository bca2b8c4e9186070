"""Query — a question raised while an assignment is being worked on."""

from dataclasses import dataclass
from datetime import datetime

from titleflow.domain.value_objects.enums import ActorRole


@dataclass
class Query:
    id: str
    text: str
    raised_by: str
    raised_at: datetime
    directed_to: ActorRole | None = None
    response: str | None = None
    responded_by: str | None = None
    responded_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.response is None

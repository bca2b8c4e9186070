"""Document — a work product or supporting file attached to an assignment.

The content itself lives in document storage; the core only tracks metadata.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Document:
    id: str
    name: str
    category: str
    uploaded_by: str
    uploaded_at: datetime
    size: int | None = None

"""Port interface for assignment persistence."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from titleflow.domain.entities.assignment import Assignment
from titleflow.domain.value_objects.enums import AssignmentStatus


class AssignmentRepository(ABC):
    @abstractmethod
    async def save(self, assignment: Assignment) -> Assignment:
        """Persist the whole record (status, fulfiller, audit trail) as one write."""
        ...

    @abstractmethod
    async def get_by_id(self, assignment_id: str) -> Assignment | None:
        ...

    @abstractmethod
    async def get_all(self) -> list[Assignment]:
        ...

    @abstractmethod
    async def get_by_statuses(self, statuses: Iterable[AssignmentStatus]) -> list[Assignment]:
        """Return matching assignments ordered by (created_at, id)."""
        ...

    @abstractmethod
    async def get_by_fulfiller(self, fulfiller_id: str) -> list[Assignment]:
        ...

    @abstractmethod
    async def get_by_hub(self, hub_id: str) -> list[Assignment]:
        ...

    @abstractmethod
    async def search(self, term: str) -> list[Assignment]:
        """Exact account number or reference, or borrower name containing *term*.

        A blank term matches nothing.
        """
        ...

    @abstractmethod
    async def next_reference_number(self) -> int:
        """Atomically allocate the next sequential reference number (starts at 1)."""
        ...

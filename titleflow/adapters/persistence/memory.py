"""In-memory repositories.

Records are deep-copied on the way in and on the way out, so callers never
share mutable state with the store: a change only becomes visible to others
once it is saved.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable

from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.application.ports.fulfiller_repo import FulfillerRepository
from titleflow.application.ports.hub_repo import HubRepository
from titleflow.domain.entities.assignment import Assignment
from titleflow.domain.entities.fulfiller import Fulfiller
from titleflow.domain.entities.hub import Hub
from titleflow.domain.value_objects.enums import AssignmentStatus


class InMemoryAssignmentRepository(AssignmentRepository):
    def __init__(self, assignments: Iterable[Assignment] = ()):
        self._items: dict[str, Assignment] = {}
        for a in assignments:
            self._items[a.id] = copy.deepcopy(a)
        self._counter = len(self._items)

    async def save(self, assignment):
        self._items[assignment.id] = copy.deepcopy(assignment)
        return assignment

    async def get_by_id(self, assignment_id):
        found = self._items.get(assignment_id)
        return copy.deepcopy(found) if found is not None else None

    async def get_all(self):
        return self._sorted(self._items.values())

    async def get_by_statuses(self, statuses):
        wanted = set(statuses)
        return self._sorted(a for a in self._items.values() if a.status in wanted)

    async def get_by_fulfiller(self, fulfiller_id):
        return self._sorted(
            a for a in self._items.values() if a.assigned_fulfiller_id == fulfiller_id
        )

    async def get_by_hub(self, hub_id):
        return self._sorted(a for a in self._items.values() if a.origin_hub_id == hub_id)

    async def search(self, term):
        return self._sorted(a for a in self._items.values() if a.matches(term))

    async def next_reference_number(self):
        # No await between read and write, so this is atomic on the event loop
        self._counter += 1
        return self._counter

    def count(self, status: AssignmentStatus | None = None) -> int:
        if status is None:
            return len(self._items)
        return sum(1 for a in self._items.values() if a.status == status)

    @staticmethod
    def _sorted(items: Iterable[Assignment]) -> list[Assignment]:
        return [copy.deepcopy(a) for a in sorted(items, key=lambda a: (a.created_at, a.id))]


class InMemoryFulfillerRepository(FulfillerRepository):
    def __init__(self, fulfillers: Iterable[Fulfiller] = ()):
        self._items: dict[str, Fulfiller] = {f.id: copy.deepcopy(f) for f in fulfillers}

    async def save(self, fulfiller):
        self._items[fulfiller.id] = copy.deepcopy(fulfiller)
        return fulfiller

    async def get_by_id(self, fulfiller_id):
        found = self._items.get(fulfiller_id)
        return copy.deepcopy(found) if found is not None else None

    async def get_all(self):
        return [copy.deepcopy(self._items[k]) for k in sorted(self._items)]

    async def get_by_hub(self, hub_id):
        return [f for f in await self.get_all() if f.home_hub_id == hub_id]

    async def delete(self, fulfiller_id):
        self._items.pop(fulfiller_id, None)


class InMemoryHubRepository(HubRepository):
    def __init__(self, hubs: Iterable[Hub] = ()):
        self._items: dict[str, Hub] = {h.id: copy.deepcopy(h) for h in hubs}

    async def save(self, hub):
        self._items[hub.id] = copy.deepcopy(hub)
        return hub

    async def get_by_id(self, hub_id):
        found = self._items.get(hub_id)
        return copy.deepcopy(found) if found is not None else None

    async def get_by_code(self, code):
        return next(
            (copy.deepcopy(h) for h in self._items.values() if h.code == code), None
        )

    async def get_all(self):
        return [copy.deepcopy(self._items[k]) for k in sorted(self._items)]

    async def delete(self, hub_id):
        self._items.pop(hub_id, None)

"""Port interface for hub persistence."""

from abc import ABC, abstractmethod

from titleflow.domain.entities.hub import Hub


class HubRepository(ABC):
    @abstractmethod
    async def save(self, hub: Hub) -> Hub:
        ...

    @abstractmethod
    async def get_by_id(self, hub_id: str) -> Hub | None:
        ...

    @abstractmethod
    async def get_by_code(self, code: str) -> Hub | None:
        ...

    @abstractmethod
    async def get_all(self) -> list[Hub]:
        ...

    @abstractmethod
    async def delete(self, hub_id: str) -> None:
        ...

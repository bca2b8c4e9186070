"""Port interface for fulfiller persistence."""

from abc import ABC, abstractmethod

from titleflow.domain.entities.fulfiller import Fulfiller


class FulfillerRepository(ABC):
    @abstractmethod
    async def save(self, fulfiller: Fulfiller) -> Fulfiller:
        ...

    @abstractmethod
    async def get_by_id(self, fulfiller_id: str) -> Fulfiller | None:
        ...

    @abstractmethod
    async def get_all(self) -> list[Fulfiller]:
        ...

    @abstractmethod
    async def get_by_hub(self, hub_id: str) -> list[Fulfiller]:
        ...

    @abstractmethod
    async def delete(self, fulfiller_id: str) -> None:
        ...

"""Repository base interface."""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")
InputT = TypeVar("InputT")


class RepositoryBase(ABC, Generic[T, InputT]):
    """Base repository interface. Records are never deleted."""

    @abstractmethod
    async def get_by_id(self, id: int) -> Optional[T]:
        """Retrieve entity by ID."""
        pass

    @abstractmethod
    async def create(self, entity: InputT) -> T:
        """Create new entity."""
        pass

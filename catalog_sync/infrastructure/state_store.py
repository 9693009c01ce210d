"""Durable key/value state storage.

Provides:
- StateStore protocol used by import checkpoints
- In-memory implementation for tests and single-process runs
- Database implementation backed by the key_value_state table
"""

import copy
from typing import Any, Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_sync.infrastructure.models import StateEntry

logger = structlog.get_logger()


class StateStore(Protocol):
    """Keyed state storage surviving process restarts."""

    async def get(self, key: str, default: Any = None) -> Any:
        """Get a stored value, or default when absent."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous one."""
        ...

    async def delete(self, key: str) -> None:
        """Remove a stored value. Missing keys are ignored."""
        ...


class InMemoryStateStore:
    """In-memory state store.

    Values are deep-copied on the way in and out so callers never
    share mutable state with the store.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._values: dict[str, Any] = {}

    async def get(self, key: str, default: Any = None) -> Any:
        """Get a stored value.

        Args:
            key: State key.
            default: Value returned when the key is absent.

        Returns:
            Copy of the stored value, or default.
        """
        if key not in self._values:
            return default
        return copy.deepcopy(self._values[key])

    async def set(self, key: str, value: Any) -> None:
        """Store a value.

        Args:
            key: State key.
            value: JSON-serializable value.
        """
        self._values[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        """Remove a stored value.

        Args:
            key: State key.
        """
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        """Get stored keys.

        Returns:
            List of keys currently stored.
        """
        return list(self._values)


class DatabaseStateStore:
    """State store backed by the key_value_state table.

    Writes are flushed immediately; the enclosing session commit makes
    them durable.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize store with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get(self, key: str, default: Any = None) -> Any:
        """Get a stored value.

        Args:
            key: State key.
            default: Value returned when the key is absent.

        Returns:
            Stored value, or default.
        """
        entry = await self.session.get(StateEntry, key)
        if entry is None:
            return default
        return entry.value

    async def set(self, key: str, value: Any) -> None:
        """Store a value, overwriting any previous one.

        Args:
            key: State key.
            value: JSON-serializable value.
        """
        entry = await self.session.get(StateEntry, key)
        if entry is None:
            entry = StateEntry(name=key, value=copy.deepcopy(value))
            self.session.add(entry)
        else:
            entry.value = copy.deepcopy(value)
        await self.session.flush()

        logger.debug("Stored state value", key=key)

    async def delete(self, key: str) -> None:
        """Remove a stored value.

        Args:
            key: State key.
        """
        entry = await self.session.get(StateEntry, key)
        if entry is None:
            return

        await self.session.delete(entry)
        await self.session.flush()

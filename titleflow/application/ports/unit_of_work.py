"""Transaction hooks handed to use cases by the composition root."""

from collections.abc import Awaitable, Callable

# Both are no-ops for in-memory storage
Commit = Callable[[], Awaitable[None]]
Rollback = Callable[[], Awaitable[None]]

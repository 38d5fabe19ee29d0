from __future__ import annotations

from collections.abc import AsyncIterator

from source_resolver.core.ports.store import AssociationStore
from source_resolver.db.engine import get_store as _build_store

_store: AssociationStore | None = None


async def get_store() -> AsyncIterator[AssociationStore]:
    """Yield an ``AssociationStore`` instance, creating it lazily on first call."""
    global _store  # noqa: PLW0603
    if _store is None:
        _store = _build_store()
    yield _store


async def shutdown_store() -> None:
    global _store  # noqa: PLW0603
    if _store is not None:
        await _store.dispose()
        _store = None

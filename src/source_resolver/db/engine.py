import os

import httpx

from source_resolver.core.ports.store import AssociationStore
from source_resolver.db.http import HttpAssociationStore
from source_resolver.db.memory import InMemoryAssociationStore


def get_client() -> httpx.AsyncClient:
    base_url = os.getenv("SOURCE_RESOLVER_API_URL", "http://localhost:3001")
    timeout = float(os.getenv("SOURCE_RESOLVER_TIMEOUT", "10"))
    headers: dict[str, str] = {}
    token = os.getenv("SOURCE_RESOLVER_API_TOKEN")
    if token:
        headers["Authorization"] = token if token.startswith("Bearer ") else f"Bearer {token}"
    return httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(timeout), headers=headers)


def get_store() -> AssociationStore:
    """Build the store selected by ``SOURCE_RESOLVER_STORE`` (``http`` or ``memory``)."""
    kind = os.getenv("SOURCE_RESOLVER_STORE", "http").lower()
    if kind == "memory":
        return InMemoryAssociationStore()
    if kind != "http":
        raise ValueError(f"Unknown SOURCE_RESOLVER_STORE: {kind!r}")
    return HttpAssociationStore(get_client())

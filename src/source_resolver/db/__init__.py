from source_resolver.db.engine import get_client, get_store
from source_resolver.db.http import HttpAssociationStore
from source_resolver.db.memory import InMemoryAssociation, InMemoryAssociationStore

__all__ = [
    "HttpAssociationStore",
    "InMemoryAssociation",
    "InMemoryAssociationStore",
    "get_client",
    "get_store",
]

"""Gateways to the persistence and identity backends."""

from .store import DocumentStore, MemoryDocumentStore, MongoDocumentStore, split_path, join_path
from .identity import (
    IdentityAccount,
    IdentityError,
    IdentityGateway,
    FirebaseIdentityGateway,
    LocalIdentityGateway,
)

__all__ = [
    "DocumentStore",
    "MemoryDocumentStore",
    "MongoDocumentStore",
    "split_path",
    "join_path",
    "IdentityAccount",
    "IdentityError",
    "IdentityGateway",
    "FirebaseIdentityGateway",
    "LocalIdentityGateway",
]

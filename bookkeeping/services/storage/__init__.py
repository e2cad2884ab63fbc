"""
Storage Services Package

Provides the abstract blob store interface and its implementations.
Dropbox is the production backend; the in-memory store serves tests and
offline use.
"""

from bookkeeping.services.storage.interface import (
    AuthError,
    BlobStoreInterface,
    NotFoundError,
    StorageError,
    TransportError,
)
from bookkeeping.services.storage.credentials import CredentialStore, SavedCredential
from bookkeeping.services.storage.dropbox import (
    DropboxBlobStore,
    DropboxClient,
    DropboxSession,
)
from bookkeeping.services.storage.memory import InMemoryBlobStore

__all__ = [
    # Interface
    "BlobStoreInterface",
    # Exceptions
    "AuthError",
    "NotFoundError",
    "StorageError",
    "TransportError",
    # Credentials
    "CredentialStore",
    "SavedCredential",
    # Dropbox implementation
    "DropboxBlobStore",
    "DropboxClient",
    "DropboxSession",
    # In-memory implementation
    "InMemoryBlobStore",
]

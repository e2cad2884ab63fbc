"""
Abstract Blob Store Interface

DESIGN DECISION: We define an abstract interface for the remote store.
This allows us to:
1. Swap Dropbox for another path-addressed JSON store later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from the transport

The interface is intentionally small: named JSON documents addressed by
path, plus folder-level move/delete for profile lifecycle.

CRITICAL: exists() has THREE outcomes, not two.
- True:  the resource is confirmed present
- False: the resource is confirmed absent
- raise: we could not find out (network, auth, server error)
Treating "could not find out" as "absent" lets a transient outage
overwrite real remote data with an empty default.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class BlobStoreInterface(ABC):
    """
    Abstract interface for path-addressed JSON documents.

    Paths are absolute ("/settings.json", "/profiles/Work/settings.json").

    Stores that need a credential override the session hooks at the
    bottom; the defaults describe a store that is always usable.
    """

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """
        Check whether a resource exists.

        Returns:
            True if confirmed present, False if confirmed absent

        Raises:
            AuthError: credential rejected
            TransportError: could not reach the store
            StorageError: any other failure to determine presence
        """
        pass

    @abstractmethod
    async def read(self, path: str) -> Optional[Any]:
        """
        Read and decode a JSON resource.

        Returns:
            The decoded value, or None if the resource does not exist

        Raises:
            AuthError, TransportError, StorageError
        """
        pass

    @abstractmethod
    async def write(self, path: str, value: Any) -> None:
        """
        Encode and write a JSON resource, overwriting any existing one.

        Raises:
            AuthError, TransportError, StorageError
        """
        pass

    @abstractmethod
    async def move(self, old_path: str, new_path: str) -> None:
        """
        Move a resource or folder.

        Raises:
            NotFoundError: old_path does not exist
            AuthError, TransportError, StorageError
        """
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """
        Delete a resource or folder (recursively).

        Raises:
            NotFoundError: path does not exist
            AuthError, TransportError, StorageError
        """
        pass

    # --- Session hooks ---

    @property
    def is_authenticated(self) -> bool:
        return True

    def clear_session(self) -> None:
        """Forget the credential locally (no remote call)."""

    async def teardown(self) -> bool:
        """Revoke and forget the credential. Returns True if revoked."""
        self.clear_session()
        return True


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Resource not found in storage (a normal, confirmed outcome)."""
    pass


class AuthError(StorageError):
    """Credential invalid, expired or revoked. Fatal to the session."""
    pass


class TransportError(StorageError):
    """Store unreachable or temporarily failing. Transient, retry-eligible."""
    pass

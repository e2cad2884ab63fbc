"""Services package."""

from bookkeeping.services.storage import (
    AuthError,
    BlobStoreInterface,
    CredentialStore,
    DropboxBlobStore,
    DropboxClient,
    DropboxSession,
    InMemoryBlobStore,
    NotFoundError,
    SavedCredential,
    StorageError,
    TransportError,
)

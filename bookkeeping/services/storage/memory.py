"""
In-Memory Blob Store

Same contract as the Dropbox store, backed by a dict of path -> JSON text.
Values are stored encoded so callers never share mutable state with the
store. Folders are implicit: any path with stored resources under it.
"""

import json
from typing import Any, Optional

from bookkeeping.services.storage.interface import BlobStoreInterface, NotFoundError


class InMemoryBlobStore(BlobStoreInterface):
    """Blob store for tests and the offline "memory" backend."""

    def __init__(self, files: Optional[dict[str, Any]] = None):
        self.files: dict[str, str] = {}
        for path, value in (files or {}).items():
            self.files[path] = json.dumps(value, ensure_ascii=False)

    def _under(self, path: str) -> list[str]:
        prefix = path.rstrip("/") + "/"
        return [p for p in self.files if p == path or p.startswith(prefix)]

    async def exists(self, path: str) -> bool:
        return bool(self._under(path))

    async def read(self, path: str) -> Optional[Any]:
        if path not in self.files:
            return None
        return json.loads(self.files[path])

    async def write(self, path: str, value: Any) -> None:
        self.files[path] = json.dumps(value, ensure_ascii=False)

    async def move(self, old_path: str, new_path: str) -> None:
        matches = self._under(old_path)
        if not matches:
            raise NotFoundError(f"path/not_found: {old_path}")
        for path in matches:
            self.files[new_path + path[len(old_path):]] = self.files.pop(path)

    async def delete(self, path: str) -> None:
        matches = self._under(path)
        if not matches:
            raise NotFoundError(f"path_lookup/not_found: {path}")
        for match in matches:
            del self.files[match]

"""Saved Dropbox credential, kept as a small JSON file between runs."""

import json
import os
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

logger = structlog.get_logger(__name__)


class SavedCredential(BaseModel):
    """What is needed to restore a session without logging in again."""

    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None


class CredentialStore:
    """Load/save/clear the saved credential at a fixed path."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> Optional[SavedCredential]:
        """Return the saved credential, or None if there is none usable."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                return SavedCredential.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("saved_credential_unreadable", path=str(self.path), error=str(e))
            return None

    def save(self, credential: SavedCredential) -> Path:
        """
        Save the credential, creating the directory if needed.

        The file is readable by the owner only.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(credential.model_dump(), f, indent=2)
            f.write("\n")
        os.chmod(self.path, 0o600)

        return self.path

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

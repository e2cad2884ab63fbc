"""
Profile Directory

Maps logical ledgers ("profiles") onto folders of the remote store and
keeps the registry document (/profiles.json) in step with them.

Layout:
    /profiles.json                       registry
    /bookkeeping_data.json               Default profile
    /settings.json
    /profiles/<name>/bookkeeping_data.json
    /profiles/<name>/settings.json

DESIGN DECISION: The registry is always written FIRST on create and
rename, so the name is reserved before any folder is touched. A profile
has no folder until its first write; folder operations therefore treat
"not found" as nothing to do. Any other folder failure is raised, even
when the registry has already changed, so the caller can retry.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from bookkeeping.audit import AuditLogger
from bookkeeping.models.audit import AuditEventType
from bookkeeping.models.ledger import DEFAULT_PROFILE, ProfileRegistry, ValidationIssue
from bookkeeping.services.storage import BlobStoreInterface, NotFoundError, StorageError
from bookkeeping.validation import LedgerValidator, ValidationError


REGISTRY_PATH = "/profiles.json"
PROFILES_ROOT = "/profiles"
TRANSACTIONS_RESOURCE = "bookkeeping_data.json"
SETTINGS_RESOURCE = "settings.json"


def profile_root(name: str) -> str:
    """Folder holding a profile's resources ("" for Default, the store root)."""
    if name == DEFAULT_PROFILE:
        return ""
    return f"{PROFILES_ROOT}/{name}"


class ProfileDirectory:
    """
    Known profiles plus the active one.

    The active profile is process state only; it is never written remotely.
    """

    def __init__(
        self,
        store: BlobStoreInterface,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._active = DEFAULT_PROFILE

    # --- Active profile ---

    def get_active(self) -> str:
        return self._active

    def set_active(self, name: str) -> None:
        self._active = name

    def reset(self) -> None:
        """Back to Default (used on logout)."""
        self._active = DEFAULT_PROFILE

    def resolve(self, resource_name: str, profile: Optional[str] = None) -> str:
        """Concrete remote path of a resource in the active (or given) profile."""
        resource_name = resource_name.lstrip("/")
        return f"{profile_root(profile or self._active)}/{resource_name}"

    # --- Registry ---

    async def list_profiles(self) -> list[str]:
        """
        Read the registry.

        A confirmed-missing registry means only Default exists. Any failure
        to read it is raised, never replaced by the fallback.
        """
        data = await self._store.read(REGISTRY_PATH)
        if data is None:
            return [DEFAULT_PROFILE]
        try:
            return ProfileRegistry.model_validate(data).names()
        except PydanticValidationError as e:
            raise StorageError(f"{REGISTRY_PATH} is malformed: {e}") from e

    async def _write_registry(self, names: list[str]) -> None:
        registry = ProfileRegistry(profiles=names)
        await self._store.write(REGISTRY_PATH, {"profiles": registry.names()})

    async def create(self, name: str) -> str:
        """
        Register a new, empty profile.

        No folder or data file is created; those appear on first write.

        Returns:
            The trimmed name as registered

        Raises:
            ValidationError: invalid, reserved or existing name
        """
        profiles = await self.list_profiles()
        name = self._validator.validate_profile_name(name, profiles)

        await self._write_registry([*profiles, name])

        self._audit_logger.record(
            AuditEventType.PROFILE_CREATED,
            f"Profile {name} registered",
            profile=name,
        )
        return name

    def _existing_name(self, name: str, profiles: list[str]) -> str:
        """Trim a name that must already be registered."""
        cleaned = name.strip()
        if not cleaned or "/" in cleaned or "\\" in cleaned:
            raise ValidationError([ValidationIssue(
                field="name",
                issue_type="invalid_format",
                message=f"{name!r} is not a profile name",
            )])
        if cleaned not in profiles:
            raise ValidationError([ValidationIssue(
                field="name",
                issue_type="not_found",
                message=f"Profile {cleaned} does not exist",
            )])
        return cleaned

    async def _interrupted_rename(self, old: str, new: str, profiles: list[str]) -> bool:
        """
        True when an earlier rename of old to new updated the registry but
        did not move the folder: new is registered and empty, old is not
        registered and still holds data.
        """
        old = old.strip()
        if not old or "/" in old or "\\" in old or old in profiles:
            return False
        if new == DEFAULT_PROFILE or new not in profiles:
            return False
        if await self._store.exists(profile_root(new)):
            return False
        return await self._store.exists(profile_root(old))

    async def rename(self, old: str, new: str) -> str:
        """
        Rename a profile.

        Order: (1) registry with the new name, (2) move the folder.
        A missing folder is fine (profile never written). Other move
        failures are raised after the registry was updated; calling
        rename again with the same names then only retries the move.
        The active profile follows once the folder is in place.

        Returns:
            The trimmed new name
        """
        if old.strip() == DEFAULT_PROFILE:
            raise ValidationError([ValidationIssue(
                field="name",
                issue_type="reserved",
                message=f"Cannot rename the {DEFAULT_PROFILE} profile",
            )])

        profiles = await self.list_profiles()
        resumed = await self._interrupted_rename(old, new.strip(), profiles)
        if resumed:
            old, new = old.strip(), new.strip()
        else:
            old = self._existing_name(old, profiles)
            new = self._validator.validate_profile_name(new, profiles)

            # 1. Reserve the new name
            await self._write_registry([new if p == old else p for p in profiles])

        # 2. Move the folder
        try:
            await self._store.move(profile_root(old), profile_root(new))
        except NotFoundError:
            pass

        if self._active == old:
            self._active = new

        self._audit_logger.record(
            AuditEventType.PROFILE_RENAMED,
            f"Profile {old} renamed to {new}",
            profile=new,
            old_name=old,
            resumed=resumed,
        )
        return new

    async def delete(self, name: str) -> str:
        """
        Delete a profile and all of its data.

        Order: (1) remove the folder (missing is fine), (2) registry.
        Only a registered profile is touched. Deleting the active profile
        makes Default active.

        Returns:
            The trimmed name that was deleted
        """
        if name.strip() == DEFAULT_PROFILE:
            raise ValidationError([ValidationIssue(
                field="name",
                issue_type="reserved",
                message=f"Cannot delete the {DEFAULT_PROFILE} profile",
            )])

        profiles = await self.list_profiles()
        name = self._existing_name(name, profiles)

        # 1. Remove the data
        try:
            await self._store.delete(profile_root(name))
        except NotFoundError:
            pass

        # 2. Update the registry
        await self._write_registry([p for p in profiles if p != name])

        if self._active == name:
            self._active = DEFAULT_PROFILE

        self._audit_logger.record(
            AuditEventType.PROFILE_DELETED,
            f"Profile {name} deleted",
            profile=name,
        )
        return name

"""
Dropbox Storage Implementation

DESIGN DECISION: Dropbox is the remote store because:
1. The user's data stays in their own account, visible as plain JSON files
2. No server of our own to run
3. Built-in version history (Dropbox keeps previous file revisions)

TRADEOFFS:
- Whole-document overwrite on every save (fine for a personal ledger)
- No revision checks: the last write wins
- Each profile is a folder; rename/delete are folder operations

Error mapping (the part everything else relies on):
- connection error, timeout, 429, 5xx -> TransportError (retried)
- 401                                 -> AuthError (one refresh attempt first)
- 409 ".../not_found/..."             -> NotFoundError
- anything else >= 400                -> StorageError
"""

import asyncio
import base64
import hashlib
import json
import secrets
from typing import Any, Optional
from urllib.parse import urlencode

import requests
import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bookkeeping.config import DropboxSettings, get_settings
from bookkeeping.services.storage.credentials import SavedCredential
from bookkeeping.services.storage.interface import (
    AuthError,
    BlobStoreInterface,
    NotFoundError,
    StorageError,
    TransportError,
)

logger = structlog.get_logger(__name__)

SCOPES = ["files.content.read", "files.content.write"]


class DropboxSession:
    """
    Process-wide Dropbox credential.

    Only the client reads the tokens; everything else goes through
    init/restore/clear.
    """

    def __init__(self) -> None:
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None

    def init(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        if not access_token:
            raise AuthError("Access token is empty")
        self._access_token = access_token
        self._refresh_token = refresh_token or None

    def restore(self, saved: SavedCredential) -> None:
        self.init(saved.access_token, saved.refresh_token)

    def clear(self) -> None:
        self._access_token = None
        self._refresh_token = None

    @property
    def is_authenticated(self) -> bool:
        return self._access_token is not None

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._refresh_token

    def to_saved(self) -> Optional[SavedCredential]:
        if self._access_token is None:
            return None
        return SavedCredential(
            access_token=self._access_token,
            refresh_token=self._refresh_token,
        )


def _error_summary(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        return str(payload.get("error_summary") or payload.get("error_description") or payload.get("error") or payload)
    return str(payload)


def _raise_for_status(response: requests.Response) -> None:
    status = response.status_code
    if status < 400:
        return

    summary = _error_summary(response)
    if status == 401:
        raise AuthError(f"Dropbox rejected the credential: {summary}")
    if status == 409:
        if "not_found" in summary:
            raise NotFoundError(summary)
        raise StorageError(f"Dropbox refused the operation: {summary}")
    if status == 429 or status >= 500:
        raise TransportError(f"Dropbox returned {status}: {summary}")
    raise StorageError(f"Dropbox returned {status}: {summary}")


class DropboxClient:
    """
    Low-level Dropbox HTTP API v2 client.

    Handles authentication and provides retry logic for API calls.
    All methods are blocking; DropboxBlobStore runs them off the event loop.
    """

    def __init__(
        self,
        settings: Optional[DropboxSettings] = None,
        session: Optional[DropboxSession] = None,
        http: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().dropbox
        self.session = session or DropboxSession()
        self._http = http or requests.Session()
        self._code_verifier: Optional[str] = None
        self._retry_policy = Retrying(
            retry=retry_if_exception_type(TransportError),
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self._settings.retry_wait_min,
                max=self._settings.retry_wait_max,
            ),
            reraise=True,
        )

        if self._settings.access_token and not self.session.is_authenticated:
            self.session.init(self._settings.access_token, self._settings.refresh_token)

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _post_once(
        self,
        url: str,
        json_body: Optional[dict[str, Any]] = None,
        data: Optional[bytes] = None,
        api_arg: Optional[dict[str, Any]] = None,
    ) -> requests.Response:
        if not self.session.is_authenticated:
            raise AuthError("Not authenticated")

        headers = {"Authorization": f"Bearer {self.session.access_token}"}
        if api_arg is not None:
            # Header values must be ASCII; json.dumps escapes the rest
            headers["Dropbox-API-Arg"] = json.dumps(api_arg)
        if data is not None:
            headers["Content-Type"] = "application/octet-stream"

        try:
            response = self._http.post(
                url,
                headers=headers,
                json=json_body,
                data=data,
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as e:
            raise TransportError(f"Dropbox unreachable: {e}") from e

        _raise_for_status(response)
        return response

    def _post(self, url: str, **kwargs: Any) -> requests.Response:
        """POST with transport retries and one token refresh on 401."""
        try:
            return self._retry_policy.copy()(self._post_once, url, **kwargs)
        except AuthError:
            if not self.session.refresh_token:
                raise
            logger.info("dropbox_access_token_refresh")
            self.refresh_access_token()
            return self._retry_policy.copy()(self._post_once, url, **kwargs)

    def _rpc(self, endpoint: str, args: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        response = self._post(f"{self._settings.api_url}/{endpoint}", json_body=args)
        if not response.content:
            return {}
        return response.json()  # type: ignore[no-any-return]

    def _token_request_once(self, form: dict[str, str]) -> dict[str, Any]:
        try:
            response = self._http.post(
                self._settings.oauth_url,
                data=form,
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as e:
            raise TransportError(f"Dropbox unreachable: {e}") from e

        # The token endpoint answers 400 for a bad code or a revoked refresh token
        if response.status_code in (400, 401):
            raise AuthError(f"Dropbox token request rejected: {_error_summary(response)}")
        _raise_for_status(response)
        return response.json()  # type: ignore[no-any-return]

    def _token_request(self, form: dict[str, str]) -> dict[str, Any]:
        return self._retry_policy.copy()(self._token_request_once, form)

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def authorization_url(self, state: Optional[str] = None) -> str:
        """
        Start a PKCE login.

        Returns the URL the user opens in a browser. The code verifier is
        kept on the client until finish_authorization() is called.
        """
        verifier = secrets.token_urlsafe(64)
        challenge = base64.urlsafe_b64encode(
            hashlib.sha256(verifier.encode("ascii")).digest()
        ).rstrip(b"=").decode("ascii")
        self._code_verifier = verifier

        params = {
            "client_id": self._settings.app_key,
            "response_type": "code",
            "redirect_uri": self._settings.redirect_uri,
            "code_challenge": challenge,
            "code_challenge_method": "S256",
            "token_access_type": "offline",
            "scope": " ".join(SCOPES),
        }
        if state:
            params["state"] = state
        return f"{self._settings.authorize_url}?{urlencode(params)}"

    def finish_authorization(self, code: str) -> SavedCredential:
        """Exchange the redirect code for tokens and start the session."""
        if self._code_verifier is None:
            raise AuthError("No login in progress; call authorization_url() first")

        payload = self._token_request({
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self._settings.app_key,
            "redirect_uri": self._settings.redirect_uri,
            "code_verifier": self._code_verifier,
        })
        self._code_verifier = None

        self.session.init(payload["access_token"], payload.get("refresh_token"))
        return self.session.to_saved()  # type: ignore[return-value]

    def refresh_access_token(self) -> None:
        """Trade the refresh token for a new access token."""
        refresh_token = self.session.refresh_token
        if not refresh_token:
            raise AuthError("No refresh token available")

        payload = self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self._settings.app_key,
        })
        self.session.init(payload["access_token"], refresh_token)

    def revoke(self) -> None:
        """Revoke the current access token on the Dropbox side."""
        self._post_once(f"{self._settings.api_url}/auth/token/revoke")

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def get_metadata(self, path: str) -> dict[str, Any]:
        return self._rpc("files/get_metadata", {"path": path})

    def download(self, path: str) -> bytes:
        response = self._post(
            f"{self._settings.content_url}/files/download",
            api_arg={"path": path},
        )
        return response.content

    def upload(self, path: str, content: bytes) -> dict[str, Any]:
        response = self._post(
            f"{self._settings.content_url}/files/upload",
            data=content,
            api_arg={"path": path, "mode": "overwrite", "mute": True},
        )
        return response.json()  # type: ignore[no-any-return]

    def move(self, from_path: str, to_path: str) -> dict[str, Any]:
        return self._rpc("files/move_v2", {
            "from_path": from_path,
            "to_path": to_path,
            "autorename": False,
        })

    def delete(self, path: str) -> dict[str, Any]:
        return self._rpc("files/delete_v2", {"path": path})


class DropboxBlobStore(BlobStoreInterface):
    """
    Dropbox implementation of the blob store.

    Each resource is one JSON file; values are written UTF-8 with
    2-space indentation so the files stay readable in Dropbox itself.
    """

    def __init__(self, client: Optional[DropboxClient] = None):
        self._client = client or DropboxClient()

    # --- Session ---

    @property
    def is_authenticated(self) -> bool:
        return self._client.session.is_authenticated

    def init_session(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        self._client.session.init(access_token, refresh_token)

    def restore_session(self, saved: SavedCredential) -> None:
        self._client.session.restore(saved)

    def saved_credential(self) -> Optional[SavedCredential]:
        return self._client.session.to_saved()

    def authorization_url(self, state: Optional[str] = None) -> str:
        return self._client.authorization_url(state)

    async def finish_authorization(self, code: str) -> SavedCredential:
        return await asyncio.to_thread(self._client.finish_authorization, code)

    def clear_session(self) -> None:
        self._client.session.clear()

    async def teardown(self) -> bool:
        """
        Revoke the token, then clear the session.

        A failed revoke is logged and does not stop the clear.
        Returns True if the revoke succeeded.
        """
        revoked = False
        if self._client.session.is_authenticated:
            try:
                await asyncio.to_thread(self._client.revoke)
                revoked = True
            except StorageError as e:
                logger.warning("dropbox_token_revoke_failed", error=str(e))
        self.clear_session()
        return revoked

    # --- Resources ---

    async def exists(self, path: str) -> bool:
        try:
            await asyncio.to_thread(self._client.get_metadata, path)
        except NotFoundError:
            return False
        return True

    async def read(self, path: str) -> Optional[Any]:
        try:
            content = await asyncio.to_thread(self._client.download, path)
        except NotFoundError:
            return None

        try:
            return json.loads(content.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"{path} is not valid JSON: {e}") from e

    async def write(self, path: str, value: Any) -> None:
        content = json.dumps(value, indent=2, ensure_ascii=False).encode("utf-8")
        await asyncio.to_thread(self._client.upload, path, content)

    async def move(self, old_path: str, new_path: str) -> None:
        await asyncio.to_thread(self._client.move, old_path, new_path)

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._client.delete, path)

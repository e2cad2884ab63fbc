"""Tests for the Dropbox client, blob store and saved credentials."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from bookkeeping.config import DropboxSettings
from bookkeeping.services.storage import (
    AuthError,
    CredentialStore,
    DropboxBlobStore,
    DropboxClient,
    DropboxSession,
    NotFoundError,
    SavedCredential,
    StorageError,
    TransportError,
)


def _settings(**overrides) -> DropboxSettings:
    values = {
        "access_token": "token-1",
        "max_attempts": 3,
        "retry_wait_min": 0,
        "retry_wait_max": 0,
    }
    values.update(overrides)
    return DropboxSettings(**values)


def _response(status: int = 200, payload=None, content: bytes = b"") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    if payload is None:
        response.json.side_effect = ValueError("no json")
        response.content = content
        response.text = content.decode("utf-8", errors="replace")
    else:
        response.json.return_value = payload
        response.content = content or json.dumps(payload).encode()
        response.text = json.dumps(payload)
    return response


def _not_found(tag: str = "path/not_found/") -> MagicMock:
    return _response(409, {"error_summary": tag})


@pytest.fixture
def http() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(http) -> DropboxClient:
    return DropboxClient(settings=_settings(), http=http)


@pytest.fixture
def blob_store(client) -> DropboxBlobStore:
    return DropboxBlobStore(client)


class TestDropboxSession:
    """Explicit session object."""

    def test_init_and_clear(self):
        session = DropboxSession()
        assert session.is_authenticated is False
        session.init("a", "r")
        assert session.is_authenticated is True
        assert session.to_saved() == SavedCredential(access_token="a", refresh_token="r")
        session.clear()
        assert session.to_saved() is None

    def test_restore(self):
        session = DropboxSession()
        session.restore(SavedCredential(access_token="a"))
        assert session.access_token == "a"
        assert session.refresh_token is None

    def test_empty_token_rejected(self):
        with pytest.raises(AuthError):
            DropboxSession().init("")

    def test_client_picks_up_configured_token(self, http):
        client = DropboxClient(settings=_settings(refresh_token="r"), http=http)
        assert client.session.access_token == "token-1"
        assert client.session.refresh_token == "r"


class TestStatusMapping:
    """HTTP outcomes map onto the storage error taxonomy."""

    def test_request_headers(self, client, http):
        http.post.return_value = _response(200, {"name": "settings.json"})
        client.get_metadata("/settings.json")

        url = http.post.call_args.args[0]
        kwargs = http.post.call_args.kwargs
        assert url == "https://api.dropboxapi.com/2/files/get_metadata"
        assert kwargs["headers"]["Authorization"] == "Bearer token-1"
        assert kwargs["json"] == {"path": "/settings.json"}

    def test_server_error_is_retried_transport_error(self, client, http):
        http.post.return_value = _response(503, {"error": "unavailable"})
        with pytest.raises(TransportError):
            client.get_metadata("/a.json")
        assert http.post.call_count == 3

    def test_rate_limit_is_transport_error(self, client, http):
        http.post.side_effect = [_response(429, {"error_summary": "too_many_requests/"}), _response(200, {})]
        assert client.get_metadata("/a.json") == {}
        assert http.post.call_count == 2

    def test_connection_error_is_transport_error(self, client, http):
        http.post.side_effect = requests.ConnectionError("dns")
        with pytest.raises(TransportError, match="unreachable"):
            client.get_metadata("/a.json")
        assert http.post.call_count == 3

    def test_timeout_is_transport_error(self, client, http):
        http.post.side_effect = requests.Timeout("slow")
        with pytest.raises(TransportError):
            client.get_metadata("/a.json")

    def test_unauthorized_is_auth_error_without_retry(self, client, http):
        http.post.return_value = _response(401, {"error_summary": "invalid_access_token/"})
        with pytest.raises(AuthError):
            client.get_metadata("/a.json")
        assert http.post.call_count == 1

    def test_not_found(self, client, http):
        http.post.return_value = _not_found()
        with pytest.raises(NotFoundError):
            client.get_metadata("/a.json")

    def test_other_conflict_is_storage_error(self, client, http):
        http.post.return_value = _response(409, {"error_summary": "path/insufficient_space/"})
        with pytest.raises(StorageError) as exc_info:
            client.upload("/a.json", b"[]")
        assert not isinstance(exc_info.value, (NotFoundError, AuthError, TransportError))

    def test_bad_request_is_storage_error(self, client, http):
        http.post.return_value = _response(400, content=b"Error in call to API function")
        with pytest.raises(StorageError) as exc_info:
            client.get_metadata("/a.json")
        assert not isinstance(exc_info.value, AuthError)

    def test_not_authenticated(self, http):
        client = DropboxClient(settings=_settings(access_token=None), http=http)
        with pytest.raises(AuthError):
            client.get_metadata("/a.json")
        http.post.assert_not_called()


class TestTokenRefresh:
    """Expired access tokens are refreshed once."""

    def test_refresh_then_retry(self, http):
        client = DropboxClient(settings=_settings(refresh_token="refresh-1"), http=http)
        http.post.side_effect = [
            _response(401, {"error_summary": "expired_access_token/"}),
            _response(200, {"access_token": "token-2", "expires_in": 14400}),
            _response(200, {"name": "a.json"}),
        ]

        assert client.get_metadata("/a.json") == {"name": "a.json"}

        assert client.session.access_token == "token-2"
        assert client.session.refresh_token == "refresh-1"
        token_call = http.post.call_args_list[1]
        assert token_call.kwargs["data"]["grant_type"] == "refresh_token"
        assert http.post.call_args_list[2].kwargs["headers"]["Authorization"] == "Bearer token-2"

    def test_rejected_refresh_is_auth_error(self, http):
        client = DropboxClient(settings=_settings(refresh_token="revoked"), http=http)
        http.post.side_effect = [
            _response(401, {"error_summary": "expired_access_token/"}),
            _response(400, {"error": "invalid_grant"}),
        ]
        with pytest.raises(AuthError, match="rejected"):
            client.get_metadata("/a.json")

    def test_refresh_without_token(self, client):
        with pytest.raises(AuthError):
            client.refresh_access_token()


class TestLogin:
    """PKCE authorization code flow."""

    def test_authorization_url(self, client):
        url = client.authorization_url(state="xyz")
        assert url.startswith("https://www.dropbox.com/oauth2/authorize?")
        assert "code_challenge_method=S256" in url
        assert "token_access_type=offline" in url
        assert "client_id=oa453zne5pnx0u4" in url
        assert "state=xyz" in url

    def test_finish_authorization(self, http):
        client = DropboxClient(settings=_settings(access_token=None), http=http)
        client.authorization_url()
        http.post.return_value = _response(200, {"access_token": "new", "refresh_token": "r"})

        saved = client.finish_authorization("the-code")

        assert saved == SavedCredential(access_token="new", refresh_token="r")
        assert client.session.is_authenticated
        form = http.post.call_args.kwargs["data"]
        assert form["code"] == "the-code"
        assert form["grant_type"] == "authorization_code"
        assert form["code_verifier"]

    def test_finish_without_start(self, client):
        with pytest.raises(AuthError, match="No login in progress"):
            client.finish_authorization("code")

    def test_bad_code(self, http):
        client = DropboxClient(settings=_settings(access_token=None), http=http)
        client.authorization_url()
        http.post.return_value = _response(400, {"error": "invalid_grant"})
        with pytest.raises(AuthError):
            client.finish_authorization("stale")
        assert client.session.is_authenticated is False


class TestDropboxBlobStore:
    """Blob store contract over the client."""

    @pytest.mark.asyncio
    async def test_exists_present(self, blob_store, http):
        http.post.return_value = _response(200, {".tag": "file"})
        assert await blob_store.exists("/a.json") is True

    @pytest.mark.asyncio
    async def test_exists_confirmed_absent(self, blob_store, http):
        http.post.return_value = _not_found("path/not_found/..")
        assert await blob_store.exists("/a.json") is False

    @pytest.mark.asyncio
    async def test_exists_unknown_raises(self, blob_store, http):
        """Test a transport failure is never reported as absence."""
        http.post.side_effect = requests.ConnectionError("offline")
        with pytest.raises(TransportError):
            await blob_store.exists("/a.json")

    @pytest.mark.asyncio
    async def test_read(self, blob_store, http):
        http.post.return_value = _response(200, content='{"profiles": ["工作"]}'.encode("utf-8"))
        assert await blob_store.read("/profiles.json") == {"profiles": ["工作"]}
        assert json.loads(http.post.call_args.kwargs["headers"]["Dropbox-API-Arg"]) == {"path": "/profiles.json"}

    @pytest.mark.asyncio
    async def test_read_with_bom(self, blob_store, http):
        http.post.return_value = _response(200, content=b"\xef\xbb\xbf[]")
        assert await blob_store.read("/a.json") == []

    @pytest.mark.asyncio
    async def test_read_missing(self, blob_store, http):
        http.post.return_value = _not_found("path/not_found/")
        assert await blob_store.read("/a.json") is None

    @pytest.mark.asyncio
    async def test_read_invalid_json(self, blob_store, http):
        http.post.return_value = _response(200, content=b"{oops")
        with pytest.raises(StorageError, match="not valid JSON"):
            await blob_store.read("/a.json")

    @pytest.mark.asyncio
    async def test_write(self, blob_store, http):
        http.post.return_value = _response(200, {"name": "a.json"})
        await blob_store.write("/a.json", {"commonSources": ["現金"]})

        kwargs = http.post.call_args.kwargs
        assert http.post.call_args.args[0] == "https://content.dropboxapi.com/2/files/upload"
        assert json.loads(kwargs["headers"]["Dropbox-API-Arg"])["mode"] == "overwrite"
        assert kwargs["headers"]["Content-Type"] == "application/octet-stream"
        assert kwargs["data"].decode("utf-8") == '{\n  "commonSources": [\n    "現金"\n  ]\n}'

    @pytest.mark.asyncio
    async def test_move_missing(self, blob_store, http):
        http.post.return_value = _not_found("from_lookup/not_found/")
        with pytest.raises(NotFoundError):
            await blob_store.move("/profiles/A", "/profiles/B")

    @pytest.mark.asyncio
    async def test_delete(self, blob_store, http):
        http.post.return_value = _response(200, {"metadata": {}})
        await blob_store.delete("/profiles/A")
        assert http.post.call_args.args[0].endswith("/files/delete_v2")

    @pytest.mark.asyncio
    async def test_teardown_revokes_and_clears(self, blob_store, http):
        http.post.return_value = _response(200, content=b"")
        assert await blob_store.teardown() is True
        assert blob_store.is_authenticated is False
        assert http.post.call_args.args[0].endswith("/auth/token/revoke")

    @pytest.mark.asyncio
    async def test_teardown_clears_even_if_revoke_fails(self, blob_store, http):
        http.post.side_effect = requests.ConnectionError("offline")
        assert await blob_store.teardown() is False
        assert blob_store.is_authenticated is False


class TestCredentialStore:
    """Saved credential file."""

    def test_round_trip(self, tmp_path):
        store = CredentialStore(tmp_path / "nested" / "credentials.json")
        saved = SavedCredential(access_token="a", refresh_token="r")
        path = store.save(saved)
        assert path.stat().st_mode & 0o777 == 0o600
        assert store.load() == saved

    def test_missing(self, tmp_path):
        assert CredentialStore(tmp_path / "none.json").load() is None

    def test_unreadable(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text("{broken", encoding="utf-8")
        assert CredentialStore(path).load() is None

    def test_clear(self, tmp_path):
        store = CredentialStore(tmp_path / "credentials.json")
        store.save(SavedCredential(access_token="a"))
        store.clear()
        store.clear()
        assert store.load() is None

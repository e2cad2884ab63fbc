"""Tests for the in-memory blob store."""

import pytest

from bookkeeping.services.storage import InMemoryBlobStore, NotFoundError


class TestInMemoryBlobStore:
    """The in-memory store must honour the same contract as Dropbox."""

    @pytest.mark.asyncio
    async def test_read_missing_is_none(self):
        assert await InMemoryBlobStore().read("/nope.json") is None

    @pytest.mark.asyncio
    async def test_write_then_read(self):
        store = InMemoryBlobStore()
        await store.write("/a.json", {"x": [1, "二"]})
        assert await store.read("/a.json") == {"x": [1, "二"]}
        assert await store.exists("/a.json") is True

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        """Test callers never share mutable state with the store."""
        store = InMemoryBlobStore()
        value = [1]
        await store.write("/a.json", value)
        value.append(2)
        assert await store.read("/a.json") == [1]

    @pytest.mark.asyncio
    async def test_folder_exists_when_it_has_resources(self):
        store = InMemoryBlobStore({"/profiles/Work/settings.json": {}})
        assert await store.exists("/profiles/Work") is True
        assert await store.exists("/profiles/Wor") is False

    @pytest.mark.asyncio
    async def test_move_folder(self):
        store = InMemoryBlobStore({
            "/profiles/A/bookkeeping_data.json": [],
            "/profiles/A/settings.json": {},
            "/profiles/AB/settings.json": {"keep": True},
        })
        await store.move("/profiles/A", "/profiles/B")
        assert sorted(store.files) == [
            "/profiles/AB/settings.json",
            "/profiles/B/bookkeeping_data.json",
            "/profiles/B/settings.json",
        ]

    @pytest.mark.asyncio
    async def test_move_missing_raises_not_found(self):
        with pytest.raises(NotFoundError):
            await InMemoryBlobStore().move("/profiles/A", "/profiles/B")

    @pytest.mark.asyncio
    async def test_delete_folder(self):
        store = InMemoryBlobStore({
            "/profiles/A/settings.json": {},
            "/settings.json": {},
        })
        await store.delete("/profiles/A")
        assert list(store.files) == ["/settings.json"]

    @pytest.mark.asyncio
    async def test_delete_missing_raises_not_found(self):
        with pytest.raises(NotFoundError):
            await InMemoryBlobStore().delete("/profiles/A")

    @pytest.mark.asyncio
    async def test_session_hooks(self):
        store = InMemoryBlobStore()
        assert store.is_authenticated is True
        assert await store.teardown() is True

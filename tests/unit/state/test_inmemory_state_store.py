"""Unit tests for InMemoryStateStore."""

import pytest

from switchboard.state.models import SessionState
from switchboard.state.stores import InMemoryStateStore


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore(ttl_seconds=60)


class TestInMemoryStateStore:
    """Tests for delta persistence and expiry."""

    @pytest.mark.asyncio
    async def test_load_unknown_contact_is_empty(self, store: InMemoryStateStore) -> None:
        state = await store.load("missing")
        assert state.contact_id == "missing"
        assert state.values == {}

    @pytest.mark.asyncio
    async def test_persist_writes_encoded_values(self, store: InMemoryStateStore) -> None:
        state = SessionState(contact_id="c1")
        state.set("Name", "value")
        state.set("Nested", {"a": [1]})
        await store.persist(state)

        assert store.raw("c1") == {"Name": "value", "Nested": '{"a": [1]}'}
        assert state.changes() == {}

        loaded = await store.load("c1")
        assert loaded.get("Nested") == {"a": [1]}

    @pytest.mark.asyncio
    async def test_persist_deletes_cleared_keys(self, store: InMemoryStateStore) -> None:
        state = SessionState(contact_id="c1")
        state.set("A", "1")
        state.set("B", "2")
        await store.persist(state)

        state.delete("A")
        await store.persist(state)

        assert store.raw("c1") == {"B": "2"}

    @pytest.mark.asyncio
    async def test_merged_config_never_persisted(self, store: InMemoryStateStore) -> None:
        state = SessionState(contact_id="c1")
        state.merge_config({"ContactFlows": [{"Name": "x"}]})
        state.set("A", "1")
        await store.persist(state)

        assert store.raw("c1") == {"A": "1"}

    @pytest.mark.asyncio
    async def test_expired_state_is_dropped(self) -> None:
        store = InMemoryStateStore(ttl_seconds=-1)
        state = SessionState(contact_id="c1")
        state.set("A", "1")
        await store.persist(state)

        loaded = await store.load("c1")
        assert loaded.values == {}

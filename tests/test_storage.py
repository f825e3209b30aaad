"""Tests for voice_engine.storage.

Covers:
- InMemoryProfileStore round trips and isolation.
- SupabaseConfig construction from the environment.
- SupabaseProfileStore queries against a mocked async client.
- create_store / get_store backend selection and singleton behaviour.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from voice_engine.config import Settings
from voice_engine.exceptions import DatabaseError, RetryExhaustedError, ValidationError
from voice_engine.logging import LogComponent, get_logger, init_logger
from voice_engine.models import CalibrationRound, VoiceDNA
from voice_engine.storage import (
    PROFILES_TABLE,
    ROUNDS_TABLE,
    InMemoryProfileStore,
    SupabaseConfig,
    SupabaseProfileStore,
    create_store,
    get_store,
    reset_store,
)


@pytest.fixture(autouse=True)
def _fresh_store():
    reset_store()
    yield
    reset_store()


def _mock_client(data):
    """An async Supabase client whose query builder returns *data*."""
    query = MagicMock()
    for method in ("select", "eq", "limit", "order", "upsert"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock(return_value=SimpleNamespace(data=data))
    client = MagicMock()
    client.table.return_value = query
    return client, query


def _profile(score=12, sessions=1):
    return VoiceDNA(calibration_score=score, voice_sessions_analyzed=sessions)


# =============================================================================
# In-memory store
# =============================================================================


class TestInMemoryProfileStore:

    @pytest.mark.asyncio
    async def test_missing_profile(self):
        assert await InMemoryProfileStore().get_profile("user-1") is None

    @pytest.mark.asyncio
    async def test_profile_round_trip(self):
        store = InMemoryProfileStore()
        profile = _profile()
        await store.save_profile("user-1", profile)

        loaded = await store.get_profile("user-1")
        assert loaded.to_dict() == profile.to_dict()
        assert loaded is not profile

    @pytest.mark.asyncio
    async def test_stored_copy_isolated(self):
        store = InMemoryProfileStore()
        profile = _profile()
        await store.save_profile("user-1", profile)
        profile.calibration_score = 99

        loaded = await store.get_profile("user-1")
        loaded.voice_sessions_analyzed = 50
        again = await store.get_profile("user-1")
        assert again.calibration_score == 12
        assert again.voice_sessions_analyzed == 1

    @pytest.mark.asyncio
    async def test_rounds_sorted_and_replaced(self):
        store = InMemoryProfileStore()
        await store.save_calibration_round("user-1", CalibrationRound(2, "second"))
        await store.save_calibration_round("user-1", CalibrationRound(1, "first"))
        await store.save_calibration_round("user-1", CalibrationRound(2, "second", rating=4))

        rounds = await store.list_calibration_rounds("user-1")
        assert [r.round_number for r in rounds] == [1, 2]
        assert rounds[1].rating == 4
        assert await store.list_calibration_rounds("user-2") == []

    @pytest.mark.asyncio
    async def test_list_user_ids(self):
        store = InMemoryProfileStore()
        await store.save_profile("zoe", _profile())
        await store.save_profile("adam", _profile())
        assert await store.list_user_ids() == ["adam", "zoe"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", ["", "   ", None])
    async def test_empty_user_id_rejected(self, user_id):
        with pytest.raises(ValidationError):
            await InMemoryProfileStore().get_profile(user_id)


# =============================================================================
# SupabaseConfig
# =============================================================================


class TestSupabaseConfig:

    def test_from_env_raises_when_vars_missing(self):
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_SERVICE_KEY must be set"):
            SupabaseConfig.from_env()

    def test_from_env_raises_when_key_missing(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        with pytest.raises(ValueError):
            SupabaseConfig.from_env()

    def test_from_env_succeeds_when_vars_set(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://test-project.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")

        config = SupabaseConfig.from_env()

        assert config.url == "https://test-project.supabase.co"
        assert config.key == "service-key"


# =============================================================================
# Supabase store
# =============================================================================


class TestSupabaseProfileStore:

    @pytest.mark.asyncio
    async def test_create_uses_async_client(self):
        config = SupabaseConfig(url="https://example.supabase.co", key="k")
        client = MagicMock()
        with patch(
            "voice_engine.storage.create_async_client", new=AsyncMock(return_value=client)
        ) as factory:
            store = await SupabaseProfileStore.create(config)
        factory.assert_awaited_once_with("https://example.supabase.co", "k")
        assert store.client is client

    @pytest.mark.asyncio
    async def test_get_profile(self):
        profile = _profile(score=40)
        client, query = _mock_client([{"profile": profile.to_dict()}])
        store = SupabaseProfileStore(client)

        loaded = await store.get_profile("user-1")

        client.table.assert_called_with(PROFILES_TABLE)
        query.eq.assert_called_with("user_id", "user-1")
        assert loaded.calibration_score == 40

    @pytest.mark.asyncio
    async def test_get_profile_missing(self):
        client, _ = _mock_client([])
        assert await SupabaseProfileStore(client).get_profile("user-1") is None

    @pytest.mark.asyncio
    async def test_save_profile_upserts_on_user_id(self):
        client, query = _mock_client([{"user_id": "user-1"}])
        await SupabaseProfileStore(client).save_profile("user-1", _profile(score=33))

        row = query.upsert.call_args.args[0]
        assert query.upsert.call_args.kwargs == {"on_conflict": "user_id"}
        assert row["user_id"] == "user-1"
        assert row["calibration_score"] == 33
        assert row["profile"]["calibration_score"] == 33

    @pytest.mark.asyncio
    async def test_save_profile_without_data_fails(self):
        client, _ = _mock_client([])
        with pytest.raises(DatabaseError, match="returned no data"):
            await SupabaseProfileStore(client).save_profile("user-1", _profile())

    @pytest.mark.asyncio
    async def test_rounds(self):
        stored = CalibrationRound(1, "first", rating=5)
        client, query = _mock_client([{"round": stored.to_dict()}])
        store = SupabaseProfileStore(client)

        rounds = await store.list_calibration_rounds("user-1")
        client.table.assert_called_with(ROUNDS_TABLE)
        query.order.assert_called_with("round_number")
        assert rounds[0].id == stored.id
        assert rounds[0].rating == 5

        await store.save_calibration_round("user-1", stored)
        row = query.upsert.call_args.args[0]
        assert row["round_number"] == 1
        assert query.upsert.call_args.kwargs == {"on_conflict": "user_id,round_number"}

    @pytest.mark.asyncio
    async def test_list_user_ids(self):
        client, _ = _mock_client([{"user_id": "a"}, {"user_id": "b"}])
        assert await SupabaseProfileStore(client).list_user_ids() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_transient_errors_retried(self):
        client, query = _mock_client([])
        query.execute = AsyncMock(
            side_effect=[ConnectionError("reset"), SimpleNamespace(data=[])]
        )
        with patch("voice_engine.utils.asyncio.sleep", new=AsyncMock()):
            assert await SupabaseProfileStore(client).get_profile("user-1") is None
        assert query.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        client, query = _mock_client([])
        query.execute = AsyncMock(side_effect=TimeoutError("slow"))
        with patch("voice_engine.utils.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(RetryExhaustedError):
                await SupabaseProfileStore(client).list_user_ids()
        assert query.execute.await_count == 3


# =============================================================================
# Factory
# =============================================================================


class TestStoreFactory:

    @pytest.mark.asyncio
    async def test_memory_backend(self):
        store = await create_store(Settings(storage_backend="memory"))
        assert isinstance(store, InMemoryProfileStore)

    @pytest.mark.asyncio
    async def test_supabase_backend(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_KEY", "k")
        with patch(
            "voice_engine.storage.create_async_client", new=AsyncMock(return_value=MagicMock())
        ):
            store = await create_store(Settings(storage_backend="supabase"))
        assert isinstance(store, SupabaseProfileStore)

    @pytest.mark.asyncio
    async def test_get_store_is_singleton(self):
        settings = Settings()
        first = await get_store(settings)
        assert await get_store(settings) is first
        reset_store()
        assert await get_store(settings) is not first

    @pytest.mark.asyncio
    async def test_creation_logged(self, tmp_path):
        init_logger(log_dir=tmp_path)
        await create_store(Settings(storage_backend="memory"))

        entries = get_logger().get_recent(component=LogComponent.STORAGE)
        assert [e.message for e in entries] == ["Profile store ready"]
        assert entries[0].data == {"backend": "memory"}

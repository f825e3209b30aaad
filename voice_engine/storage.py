"""
Profile persistence for the voice profile engine.

ALL persistence goes through a ``ProfileStore``.  The engine core never
touches storage; ``VoiceProfileService`` loads a profile, hands it to the
pure aggregation functions and saves what comes back.

Two backends:

- ``InMemoryProfileStore``: dict-backed, used by tests and one-shot CLI runs.
- ``SupabaseProfileStore``: async Supabase client over two tables,
  ``voice_dna_profiles`` (one row per user, profile as jsonb) and
  ``calibration_rounds`` (one row per user and round number).

Usage::

    from voice_engine.storage import create_store

    store = await create_store(settings)
    profile = await store.get_profile("user-123")
"""

import asyncio
import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from supabase import AsyncClient, create_async_client

from voice_engine.config import Settings
from voice_engine.exceptions import DatabaseError, ValidationError
from voice_engine.logging import ComponentLogger, LogComponent
from voice_engine.models import CalibrationRound, VoiceDNA
from voice_engine.utils import utc_now, with_retry

logger = logging.getLogger(__name__)

PROFILES_TABLE = "voice_dna_profiles"
ROUNDS_TABLE = "calibration_rounds"


def _require_user_id(user_id: str) -> None:
    if user_id is None or not str(user_id).strip():
        raise ValidationError("user_id cannot be empty")


# =============================================================================
# STORE INTERFACE
# =============================================================================


class ProfileStore(ABC):
    """Async persistence contract for profiles and calibration rounds."""

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[VoiceDNA]:
        """Return the user's profile, or ``None`` when none exists yet."""

    @abstractmethod
    async def save_profile(self, user_id: str, profile: VoiceDNA) -> None:
        """Insert or replace the user's profile."""

    @abstractmethod
    async def list_calibration_rounds(self, user_id: str) -> List[CalibrationRound]:
        """Return the user's calibration rounds ordered by round number."""

    @abstractmethod
    async def save_calibration_round(self, user_id: str, round_: CalibrationRound) -> None:
        """Insert or replace one calibration round (keyed by round number)."""

    @abstractmethod
    async def list_user_ids(self) -> List[str]:
        """Return every user id that has a stored profile."""


# =============================================================================
# IN-MEMORY BACKEND
# =============================================================================


class InMemoryProfileStore(ProfileStore):
    """Dict-backed store.

    Values are kept as serialized dicts, so callers never share mutable
    state with the store.
    """

    def __init__(self) -> None:
        self._profiles: Dict[str, Dict[str, Any]] = {}
        self._rounds: Dict[str, Dict[int, Dict[str, Any]]] = {}

    async def get_profile(self, user_id: str) -> Optional[VoiceDNA]:
        _require_user_id(user_id)
        data = self._profiles.get(user_id)
        return VoiceDNA.from_dict(data) if data is not None else None

    async def save_profile(self, user_id: str, profile: VoiceDNA) -> None:
        _require_user_id(user_id)
        self._profiles[user_id] = profile.to_dict()

    async def list_calibration_rounds(self, user_id: str) -> List[CalibrationRound]:
        _require_user_id(user_id)
        rounds = self._rounds.get(user_id, {})
        return [CalibrationRound.from_dict(rounds[n]) for n in sorted(rounds)]

    async def save_calibration_round(self, user_id: str, round_: CalibrationRound) -> None:
        _require_user_id(user_id)
        self._rounds.setdefault(user_id, {})[round_.round_number] = round_.to_dict()

    async def list_user_ids(self) -> List[str]:
        return sorted(self._profiles)


# =============================================================================
# SUPABASE BACKEND
# =============================================================================


@dataclass
class SupabaseConfig:
    """Supabase configuration loaded from environment variables.

    Attributes:
        url: The Supabase project URL (``SUPABASE_URL``).
        key: The service-role key (``SUPABASE_SERVICE_KEY``).
    """

    url: str
    key: str

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        """
        Raises:
            ValueError: If either variable is missing or empty.
        """
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_KEY")

        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

        return cls(url=url, key=key)


class SupabaseProfileStore(ProfileStore):
    """Supabase-backed store.

    Use the :meth:`create` factory; the async client needs an ``await``
    during initialisation.
    """

    def __init__(self, client: AsyncClient) -> None:
        """Private constructor.  Use :meth:`create` factory method."""
        self.client = client

    @classmethod
    async def create(cls, config: Optional[SupabaseConfig] = None) -> "SupabaseProfileStore":
        config = config or SupabaseConfig.from_env()
        client = await create_async_client(config.url, config.key)
        logger.info("Connected Supabase profile store at %s", config.url)
        return cls(client)

    # -----------------------------------------------------------------
    # PROFILES
    # -----------------------------------------------------------------

    @with_retry(max_attempts=3, operation_name="get_profile")
    async def get_profile(self, user_id: str) -> Optional[VoiceDNA]:
        _require_user_id(user_id)
        result = await (
            self.client.table(PROFILES_TABLE)
            .select("profile")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return VoiceDNA.from_dict(result.data[0]["profile"])

    async def save_profile(self, user_id: str, profile: VoiceDNA) -> None:
        """Upsert on ``user_id`` so each user keeps exactly one row.

        Raises:
            DatabaseError: When the upsert returns no data.
        """
        _require_user_id(user_id)
        row = {
            "user_id": user_id,
            "profile": profile.to_dict(),
            "calibration_score": profile.calibration_score,
            "updated_at": utc_now().isoformat(),
        }
        result = await (
            self.client.table(PROFILES_TABLE)
            .upsert(row, on_conflict="user_id")
            .execute()
        )
        if not result.data:
            raise DatabaseError("Upsert succeeded but returned no data")

    @with_retry(max_attempts=3, operation_name="list_user_ids")
    async def list_user_ids(self) -> List[str]:
        result = await (
            self.client.table(PROFILES_TABLE)
            .select("user_id")
            .order("user_id")
            .execute()
        )
        return [row["user_id"] for row in result.data or []]

    # -----------------------------------------------------------------
    # CALIBRATION ROUNDS
    # -----------------------------------------------------------------

    @with_retry(max_attempts=3, operation_name="list_calibration_rounds")
    async def list_calibration_rounds(self, user_id: str) -> List[CalibrationRound]:
        _require_user_id(user_id)
        result = await (
            self.client.table(ROUNDS_TABLE)
            .select("round")
            .eq("user_id", user_id)
            .order("round_number")
            .execute()
        )
        return [CalibrationRound.from_dict(row["round"]) for row in result.data or []]

    async def save_calibration_round(self, user_id: str, round_: CalibrationRound) -> None:
        _require_user_id(user_id)
        row = {
            "user_id": user_id,
            "round_number": round_.round_number,
            "round": round_.to_dict(),
        }
        result = await (
            self.client.table(ROUNDS_TABLE)
            .upsert(row, on_conflict="user_id,round_number")
            .execute()
        )
        if not result.data:
            raise DatabaseError("Upsert succeeded but returned no data")


# =============================================================================
# FACTORY
# =============================================================================

_store_instance: Optional[ProfileStore] = None
_store_lock: Optional[asyncio.Lock] = None
_init_lock = threading.Lock()


async def create_store(settings: Settings) -> ProfileStore:
    """Build a fresh store for ``settings.storage_backend``."""
    store: ProfileStore
    if settings.storage_backend == "supabase":
        store = await SupabaseProfileStore.create()
    else:
        store = InMemoryProfileStore()
    await ComponentLogger(LogComponent.STORAGE).info(
        "Profile store ready", data={"backend": settings.storage_backend}
    )
    return store


async def get_store(settings: Settings) -> ProfileStore:
    """Process-wide store singleton, created on first call."""
    global _store_instance, _store_lock

    if _store_lock is None:
        with _init_lock:
            if _store_lock is None:
                _store_lock = asyncio.Lock()

    if _store_instance is None:
        async with _store_lock:
            if _store_instance is None:
                _store_instance = await create_store(settings)

    return _store_instance


def reset_store() -> None:
    """Drop the cached store (tests)."""
    global _store_instance, _store_lock
    _store_instance = None
    _store_lock = None


__all__ = [
    "ProfileStore",
    "InMemoryProfileStore",
    "SupabaseConfig",
    "SupabaseProfileStore",
    "create_store",
    "get_store",
    "reset_store",
    "PROFILES_TABLE",
    "ROUNDS_TABLE",
]

"""Shared fixtures for the Voice Profile Engine test suite."""

from datetime import datetime, timezone

import pytest

from voice_engine.config import reset_settings
from voice_engine.logging import reset_logger
from voice_engine.models import WordTimestamp


# ---------------------------------------------------------------------------
# Keep the environment from leaking into tests
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _block_env_keys(monkeypatch):
    """Clear storage credentials and engine overrides for every test."""
    keys = [
        "SUPABASE_URL",
        "SUPABASE_SERVICE_KEY",
        "VOICE_ENGINE_LOG_LEVEL",
        "VOICE_ENGINE_LOG_DIR",
        "VOICE_ENGINE_STORAGE",
        "SILENCE_GAP_SECONDS",
        "PRIOR_WEIGHT_CAP",
        "RECENCY_WINDOW_DAYS",
        "MAX_REFERENTS",
    ]
    for key in keys:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Settings and the engine logger are module singletons."""
    reset_settings()
    reset_logger()
    yield
    reset_settings()
    reset_logger()


# ---------------------------------------------------------------------------
# Common datetime fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def sample_utc_now():
    """A fixed UTC datetime for deterministic tests."""
    return datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Transcript fixtures
# ---------------------------------------------------------------------------
SAMPLE_TRANSCRIPT = (
    "So I was walking into the office last Tuesday and I realized something. "
    "Honestly, the best teams I have worked with never wait for permission. "
    "They ship small things every single day. "
    "Think of it like compound interest for your product. "
    "Why do we keep planning instead of building? "
    "Here's the thing: momentum beats perfection every single time. "
    "You know, I think that is the lesson I keep relearning."
)


def make_timestamps(words, start=0.0, word_duration=0.3, gap=0.05):
    """Evenly spaced timestamps for *words*."""
    stamps = []
    t = start
    for word in words:
        stamps.append(WordTimestamp(word=word, start=round(t, 3), end=round(t + word_duration, 3)))
        t += word_duration + gap
    return stamps


@pytest.fixture
def sample_transcript():
    return SAMPLE_TRANSCRIPT


@pytest.fixture
def sample_timestamps():
    return make_timestamps(SAMPLE_TRANSCRIPT.split())


@pytest.fixture
def timestamp_factory():
    """Factory for evenly spaced word timestamps."""
    return make_timestamps


# ---------------------------------------------------------------------------
# Feature contribution fixtures
# ---------------------------------------------------------------------------
def make_contribution(kind=None, **overrides):
    """A FeatureContribution with plausible defaults."""
    from voice_engine.models import (
        ClosingStyle,
        ContributionKind,
        FeatureContribution,
        LengthBucket,
        OpeningStyle,
        PaceVariation,
        StorytellingStyle,
        StructurePreference,
        TonalAttributes,
    )

    kind = kind or ContributionKind.VOICE_SESSION
    values = dict(
        kind=kind,
        avg_sentence_length=LengthBucket.MEDIUM,
        pace_variation=PaceVariation.VARIED,
        uses_questions=True,
        uses_analogies=False,
        storytelling_style=StorytellingStyle.ANECDOTE_FIRST,
        frequent_words=["teams", "product", "momentum"],
        word_frequencies={"teams": 4, "product": 3, "momentum": 2},
        signature_phrases=["here's the thing"],
        filler_words=["you know"],
        structure_preference=StructurePreference.LINEAR,
        formality=0.4,
        paragraph_length=LengthBucket.SHORT,
        opening_style=OpeningStyle.STORY,
        closing_style=ClosingStyle.REFLECTION,
        tonal_attributes=TonalAttributes(
            warmth=0.6, authority=0.5, humor=0.3, directness=0.7, empathy=0.4
        ),
        energy_level=0.6 if kind is ContributionKind.VOICE_SESSION else None,
        topics_that_excite=["momentum"] if kind is ContributionKind.VOICE_SESSION else [],
        sentence_count=7,
        word_count=90,
    )
    values.update(overrides)
    return FeatureContribution(**values)


@pytest.fixture
def contribution_factory():
    return make_contribution

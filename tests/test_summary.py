"""Tests for voice_engine.profile.summary."""

import pytest

from voice_engine.models import (
    CalibrationLevel,
    EnthusiasmPattern,
    PaceVariation,
    ProfileState,
    Rhetoric,
    Rhythm,
    SpokenPatterns,
    StorytellingStyle,
    TonalAttributes,
    Vocabulary,
    VoiceDNA,
)
from voice_engine.profile import calibration_level, summarize_voice_dna


def _rich_profile(**tones):
    values = dict(warmth=0.8, authority=0.71, humor=0.65, directness=0.9, empathy=0.75)
    values.update(tones)
    return VoiceDNA(
        spoken_patterns=SpokenPatterns(
            rhythm=Rhythm(pace_variation=PaceVariation.DYNAMIC),
            rhetoric=Rhetoric(
                uses_questions=True,
                uses_analogies=True,
                storytelling_style=StorytellingStyle.ANECDOTE_FIRST,
            ),
            vocabulary=Vocabulary(signature_phrases=["here's the thing", "ship it"]),
            enthusiasm=EnthusiasmPattern(topics_that_excite=["pricing", "teams", "growth"]),
        ),
        tonal_attributes=TonalAttributes(**values),
        voice_sessions_analyzed=2,
        calibration_score=45,
    )


class TestCalibrationLevel:

    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, CalibrationLevel.LOW),
            (29, CalibrationLevel.LOW),
            (30, CalibrationLevel.MEDIUM),
            (69, CalibrationLevel.MEDIUM),
            (70, CalibrationLevel.HIGH),
            (100, CalibrationLevel.HIGH),
        ],
    )
    def test_levels(self, score, expected):
        assert calibration_level(score) is expected


class TestSummarizeVoiceDNA:

    def test_default_profile(self):
        summary = summarize_voice_dna(VoiceDNA())
        assert summary.strengths == []
        assert summary.characteristics == []
        assert summary.calibration_level is CalibrationLevel.LOW
        assert summary.state is ProfileState.NONE

    def test_strengths_capped_at_five(self):
        summary = summarize_voice_dna(_rich_profile())
        assert summary.strengths == [
            "Engages with questions",
            "Uses analogies effectively",
            "Warm & approachable",
            "Confident & authoritative",
            "Good sense of humor",
        ]

    def test_thresholds_are_strict(self):
        summary = summarize_voice_dna(
            _rich_profile(warmth=0.7, authority=0.5, humor=0.6, directness=0.5, empathy=0.5)
        )
        assert summary.strengths == ["Engages with questions", "Uses analogies effectively"]

    def test_humor_registers_lower(self):
        summary = summarize_voice_dna(
            _rich_profile(warmth=0.5, authority=0.5, humor=0.61, directness=0.5, empathy=0.5)
        )
        assert "Good sense of humor" in summary.strengths

    def test_characteristics(self):
        summary = summarize_voice_dna(_rich_profile())
        assert summary.characteristics == [
            "Anecdotal storyteller",
            "Dynamic pacing",
            "Passionate about: pricing, teams",
            'Signature phrase: "here\'s the thing"',
        ]

    def test_level_and_state(self):
        summary = summarize_voice_dna(_rich_profile())
        assert summary.calibration_level is CalibrationLevel.MEDIUM
        assert summary.state is ProfileState.NASCENT

        profile = _rich_profile()
        profile.calibration_score = 75
        summary = summarize_voice_dna(profile)
        assert summary.calibration_level is CalibrationLevel.HIGH
        assert summary.state is ProfileState.CALIBRATED

    def test_to_dict(self):
        data = summarize_voice_dna(_rich_profile()).to_dict()
        assert data["calibration_level"] == "medium"
        assert data["state"] == "nascent"
        assert len(data["strengths"]) == 5

"""Tests for voice_engine.models: enums, serialization and derived properties."""

from datetime import datetime, timezone

import pytest

from voice_engine.models import (
    CATEGORICAL_FIELDS,
    CalibrationInsight,
    CalibrationLevel,
    CalibrationRound,
    CategoryVote,
    ContributionKind,
    EnthusiasmAnalysis,
    EnthusiasmIndicator,
    EnthusiasmSegment,
    LearnedRule,
    PeakMoment,
    PeakUse,
    ProfileState,
    ReferentInfluences,
    ReferentWeight,
    ResponseType,
    RuleType,
    TonalAttributes,
    TranscriptionResult,
    VoiceDNA,
    VoiceDNASummary,
    WordTimestamp,
)

FIXED_TS = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# ===================================================================
# Enums
# ===================================================================


class TestEnums:

    def test_enthusiasm_indicator_canonical_order(self):
        assert [i.value for i in EnthusiasmIndicator] == [
            "pace_increase",
            "dense_speech",
            "emphasis_words",
            "repetition",
        ]

    def test_str_enums_compare_to_values(self):
        assert ContributionKind.VOICE_SESSION == "voice_session"
        assert ProfileState("calibrated") is ProfileState.CALIBRATED
        assert CalibrationLevel.HIGH.value == "high"

    def test_categorical_fields_cover_votes(self, contribution_factory):
        assert list(contribution_factory().categorical_values()) == CATEGORICAL_FIELDS


# ===================================================================
# Transcription input
# ===================================================================


class TestTranscriptionResult:

    def test_from_dict_snake_case(self):
        result = TranscriptionResult.from_dict({
            "transcript": "hello world",
            "word_timestamps": [
                {"word": "hello", "start": 0, "end": 0.4},
                {"word": "world", "start": 0.5, "end": 0.9, "confidence": 0.8},
            ],
            "duration_seconds": 1.0,
            "language": "en",
        })
        assert result.transcript == "hello world"
        assert result.word_timestamps[1] == WordTimestamp("world", 0.5, 0.9, 0.8)
        assert result.word_timestamps[0].confidence == 1.0
        assert result.duration_seconds == 1.0

    def test_from_dict_camel_case_aliases(self):
        result = TranscriptionResult.from_dict({
            "transcript": "hi",
            "wordTimestamps": [{"word": "hi", "start": 0, "end": 0.2}],
            "duration": 0.2,
        })
        assert len(result.word_timestamps) == 1
        assert result.duration_seconds == 0.2
        assert result.language == "en"


# ===================================================================
# Enthusiasm models
# ===================================================================


class TestEnthusiasmModels:

    def test_segment_duration(self):
        seg = EnthusiasmSegment(1.0, 3.5, "text", 0.4)
        assert seg.duration == 2.5

    def test_analysis_round_trip(self):
        analysis = EnthusiasmAnalysis(
            overall_energy=0.42,
            segments=[
                EnthusiasmSegment(
                    0.0, 2.0, "this is amazing", 0.7,
                    [EnthusiasmIndicator.PACE_INCREASE, EnthusiasmIndicator.EMPHASIS_WORDS],
                )
            ],
            peak_moments=[PeakMoment(0.0, "this is amazing", "Speaking faster", PeakUse.HOOK)],
        )
        data = analysis.to_dict()
        assert data["segments"][0]["indicators"] == ["pace_increase", "emphasis_words"]
        assert data["peak_moments"][0]["use_as"] == "hook"
        assert EnthusiasmAnalysis.from_dict(data) == analysis

    def test_empty(self):
        empty = EnthusiasmAnalysis.empty()
        assert empty.overall_energy == 0.0
        assert empty.segments == [] and empty.peak_moments == []


# ===================================================================
# Voice DNA
# ===================================================================


class TestReferentInfluences:

    def _blend(self, user, *weights):
        return ReferentInfluences(
            user_weight=user,
            referents=[ReferentWeight(f"r{i}", f"R{i}", w) for i, w in enumerate(weights)],
        )

    def test_valid_blend_has_no_violations(self):
        assert self._blend(50, 33, 17).violations() == []

    def test_user_below_half(self):
        problems = self._blend(40, 60).violations()
        assert any("below 50" in p for p in problems)

    def test_sum_mismatch(self):
        problems = self._blend(60, 30).violations()
        assert any("!= 100" in p for p in problems)

    def test_too_many_traits(self):
        blend = ReferentInfluences(
            user_weight=80,
            referents=[ReferentWeight("a", "A", 20, ["t1", "t2", "t3", "t4"])],
        )
        assert any("active traits" in p for p in blend.violations())

    def test_serialized_referent_uses_id_key(self):
        data = self._blend(70, 30).to_dict()
        assert data["referents"][0]["id"] == "r0"
        assert ReferentInfluences.from_dict(data) == self._blend(70, 30)


class TestVoiceDNA:

    def test_defaults(self):
        dna = VoiceDNA()
        assert dna.calibration_score == 0
        assert dna.total_contributions == 0
        assert dna.referent_influences is None
        assert dna.tonal_attributes == TonalAttributes()

    def test_contribution_counters(self):
        dna = VoiceDNA(
            voice_sessions_analyzed=2,
            writing_samples_analyzed=1,
            calibration_rounds_completed=3,
        )
        assert dna.feature_contributions == 3
        assert dna.total_contributions == 6

    def test_round_trip(self):
        dna = VoiceDNA(
            learned_rules=[LearnedRule(RuleType.VOCABULARY, "Avoid jargon", 0.8)],
            referent_influences=ReferentInfluences(
                80, [ReferentWeight("seth-godin", "Seth Godin", 20, ["Short punchy"])]
            ),
            calibration_score=42,
            voice_sessions_analyzed=2,
            word_frequencies={"teams": 5},
            category_votes={"opening_style": {"story": CategoryVote(2, 2)}},
            contribution_history=[FIXED_TS],
            applied_calibration_rounds=["round-1"],
            created_at=FIXED_TS,
            updated_at=FIXED_TS,
        )
        dna.spoken_patterns.vocabulary.signature_phrases = ["here's the thing"]
        dna.written_patterns.formality = 0.3

        restored = VoiceDNA.from_dict(dna.to_dict())
        assert restored == dna

    def test_from_dict_tolerates_missing_sections(self):
        dna = VoiceDNA.from_dict({"calibration_score": 10})
        assert dna.calibration_score == 10
        assert dna.written_patterns.formality == 0.5
        assert dna.learned_rules == []
        assert dna.applied_calibration_rounds == []


# ===================================================================
# Calibration
# ===================================================================


class TestCalibrationRound:

    def test_unrated_by_default(self):
        round_ = CalibrationRound(round_number=1, prompt_text="Tell me about your week")
        assert not round_.is_rated
        assert not round_.has_feedback

    def test_round_trip(self):
        round_ = CalibrationRound(
            round_number=2,
            prompt_text="What excites you?",
            user_response="Shipping things",
            response_type=ResponseType.VOICE,
            generated_sample="Sample",
            rating=4,
            feedback_text="Too formal",
            insights_extracted=[CalibrationInsight(RuleType.TONE_ADJUSTMENT, "Be casual", 0.7)],
            created_at=FIXED_TS,
        )
        assert CalibrationRound.from_dict(round_.to_dict()) == round_


def test_summary_to_dict():
    summary = VoiceDNASummary(
        strengths=["Engages with questions"],
        characteristics=["Dynamic pacing"],
        calibration_level=CalibrationLevel.MEDIUM,
        state=ProfileState.NASCENT,
    )
    assert summary.to_dict() == {
        "strengths": ["Engages with questions"],
        "characteristics": ["Dynamic pacing"],
        "calibration_level": "medium",
        "state": "nascent",
    }

"""Tests for voice_engine.analysis.linguistic: per-contribution features."""

import pytest

from voice_engine.analysis.lexicons import BaselineFrequencies
from voice_engine.analysis.linguistic import FeatureExtractor, attach_enthusiasm
from voice_engine.exceptions import ValidationError
from voice_engine.models import (
    ContributionKind,
    EnthusiasmAnalysis,
    LengthBucket,
    PaceVariation,
    PeakMoment,
    PeakUse,
    StorytellingStyle,
    StructurePreference,
)

VOICE = ContributionKind.VOICE_SESSION
WRITING = ContributionKind.WRITING_SAMPLE

CASUAL = "Yeah, I'm gonna be honest, this stuff is awesome and we're super into it."
FORMAL = (
    "Organizational transformation requires deliberate investment in "
    "infrastructure, governance, and measurement capabilities."
)


@pytest.fixture
def extractor():
    return FeatureExtractor()


# ===================================================================
# Basics
# ===================================================================


class TestExtractBasics:

    @pytest.mark.parametrize("text", ["", "   ", "...!!!"])
    def test_text_without_words_rejected(self, extractor, text):
        with pytest.raises(ValidationError):
            extractor.extract(text, VOICE)

    def test_kind_and_counts(self, extractor):
        contribution = extractor.extract("We ship fast. We learn more.", WRITING)
        assert contribution.kind is WRITING
        assert contribution.sentence_count == 2
        assert contribution.word_count == 6

    def test_enthusiasm_fields_unset(self, extractor, sample_transcript):
        contribution = extractor.extract(sample_transcript, VOICE)
        assert contribution.energy_level is None
        assert contribution.topics_that_excite == []

    def test_deterministic(self, extractor, sample_transcript):
        first = extractor.extract(sample_transcript, VOICE)
        second = extractor.extract(sample_transcript, VOICE)
        first.occurred_at = second.occurred_at
        assert first == second


# ===================================================================
# Rhythm
# ===================================================================


class TestRhythm:

    def test_short_sentences(self, extractor):
        contribution = extractor.extract("We ship fast. We learn more.", VOICE)
        assert contribution.avg_sentence_length is LengthBucket.SHORT

    def test_medium_sentence(self, extractor):
        text = (
            "Our team spent the whole quarter rebuilding the onboarding flow "
            "for every new enterprise customer."
        )
        contribution = extractor.extract(text, VOICE)
        assert contribution.avg_sentence_length is LengthBucket.MEDIUM

    def test_long_sentence(self, extractor):
        text = (
            "We spent the entire first half of the year rebuilding the onboarding "
            "flow because every new enterprise customer kept getting stuck at "
            "exactly the same confusing step."
        )
        contribution = extractor.extract(text, VOICE)
        assert contribution.avg_sentence_length is LengthBucket.LONG

    @pytest.mark.parametrize(
        "lengths,expected",
        [
            ([7], PaceVariation.CONSISTENT),
            ([3, 3], PaceVariation.CONSISTENT),
            ([5, 10], PaceVariation.VARIED),
            ([2, 20], PaceVariation.DYNAMIC),
        ],
    )
    def test_pace_variation(self, lengths, expected):
        assert FeatureExtractor._pace_variation(lengths) is expected


# ===================================================================
# Vocabulary
# ===================================================================


class TestVocabulary:

    def test_frequent_words_ranked_by_count_then_alphabet(self, extractor):
        text = "Teams build product. Teams ship product. Teams learn."
        contribution = extractor.extract(text, WRITING)
        assert contribution.frequent_words == ["teams", "product", "build", "learn", "ship"]
        assert contribution.word_frequencies == {
            "teams": 3,
            "product": 2,
            "build": 1,
            "learn": 1,
            "ship": 1,
        }

    def test_surface_list_capped(self, extractor):
        words = " ".join(f"topic{chr(ord('a') + i)}" for i in range(15))
        contribution = extractor.extract(words + ".", WRITING)
        assert len(contribution.frequent_words) == 10
        assert len(contribution.word_frequencies) == 15

    def test_stopwords_excluded(self, extractor):
        contribution = extractor.extract("The and of it is we you. The and of.", WRITING)
        assert contribution.frequent_words == []

    def test_filler_words_need_two_uses(self, extractor):
        text = "You know, we ship. You know, it works. Um, um, basically."
        contribution = extractor.extract(text, VOICE)
        assert contribution.filler_words == ["you know", "um"]

    def test_signature_phrase_detected(self, extractor):
        text = "Momentum beats perfection. Remember that momentum beats perfection."
        contribution = extractor.extract(text, VOICE)
        # the bigrams inside the trigram add no uses of their own
        assert contribution.signature_phrases == ["momentum beats perfection"]

    def test_common_phrase_not_signature(self):
        baseline = BaselineFrequencies(rates={
            "momentum beats perfection": 1.0,
            "momentum beats": 1.0,
            "beats perfection": 1.0,
        })
        extractor = FeatureExtractor(baseline=baseline)
        text = "Momentum beats perfection. Remember that momentum beats perfection."
        assert extractor.extract(text, VOICE).signature_phrases == []

    def test_single_use_phrase_not_signature(self, extractor):
        contribution = extractor.extract("Momentum beats perfection every time.", VOICE)
        assert contribution.signature_phrases == []


# ===================================================================
# Rhetoric
# ===================================================================


class TestRhetoric:

    def test_questions(self, extractor):
        assert extractor.extract("Why do teams stall? They stop shipping.", VOICE).uses_questions
        assert not extractor.extract("Teams stall. They stop shipping.", VOICE).uses_questions

    def test_analogies(self, extractor):
        assert extractor.extract("Think of it like a garden.", VOICE).uses_analogies
        assert not extractor.extract("Gardens need water.", VOICE).uses_analogies

    @pytest.mark.parametrize(
        "text,expected",
        [
            (
                "I remember the first launch. Then we rebuilt everything. "
                "Then we shipped again. Finally it worked.",
                StorytellingStyle.CHRONOLOGICAL,
            ),
            (
                "I remember one launch clearly. The team was exhausted. Nobody slept.",
                StorytellingStyle.ANECDOTE_FIRST,
            ),
            (
                "Here's the thing about pricing. Customers pay for outcomes. "
                "Nobody buys features.",
                StorytellingStyle.THESIS_FIRST,
            ),
            ("Pricing matters. Customers pay for outcomes.", StorytellingStyle.MIXED),
        ],
        ids=["chronological", "anecdote", "thesis", "mixed"],
    )
    def test_storytelling_style(self, extractor, text, expected):
        assert extractor.extract(text, VOICE).storytelling_style is expected


# ===================================================================
# Formality and tone
# ===================================================================


class TestFormalityAndTone:

    def test_casual_vs_formal(self, extractor):
        casual = extractor.extract(CASUAL, VOICE).formality
        formal = extractor.extract(FORMAL, WRITING).formality
        assert casual < 0.3
        assert formal > 0.8

    def test_formality_averaged_over_samples(self, extractor):
        casual = extractor.extract(CASUAL, VOICE).formality
        formal = extractor.extract(FORMAL, VOICE).formality
        mixed = extractor.extract(CASUAL, VOICE, written_samples=[FORMAL]).formality
        assert mixed == pytest.approx((casual + formal) / 2, abs=1e-3)

    def test_empty_samples_ignored(self, extractor):
        plain = extractor.extract(CASUAL, VOICE)
        with_blanks = extractor.extract(CASUAL, VOICE, written_samples=["", "!!!"])
        assert with_blanks.formality == plain.formality

    def test_tonal_attributes_in_range(self, extractor, sample_transcript):
        tones = extractor.extract(sample_transcript, VOICE).tonal_attributes
        for value in tones.as_dict().values():
            assert 0.0 <= value <= 1.0

    def test_warm_text_scores_warmer(self, extractor):
        warm = extractor.extract(
            "We love our community. Thank you friends, we are grateful together.", VOICE
        ).tonal_attributes
        neutral = extractor.extract("The report lists quarterly figures.", VOICE).tonal_attributes
        assert warm.warmth == 1.0
        assert neutral.warmth == pytest.approx(0.3)

    def test_hedging_lowers_directness(self, extractor):
        hedged = extractor.extract(
            "Maybe we could perhaps try it. It might probably work.", VOICE
        ).tonal_attributes
        plain = extractor.extract("We ship the report today.", VOICE).tonal_attributes
        assert hedged.directness < plain.directness


# ===================================================================
# Written patterns
# ===================================================================


class TestWrittenPatterns:

    def test_unparagraphed_text_uses_sentence_bucket(self, extractor):
        contribution = extractor.extract("We ship fast. We learn more.", VOICE)
        assert contribution.paragraph_length is LengthBucket.SHORT

    def test_samples_vote_on_structure(self, extractor):
        sample = "Three things matter:\n- Ship weekly\n- Talk to users\n- Measure retention"
        contribution = extractor.extract(
            "Pricing is a lever. Use it carefully.", VOICE, written_samples=[sample, sample]
        )
        assert contribution.structure_preference is StructurePreference.MODULAR

    def test_text_alone_keeps_its_structure(self, extractor):
        contribution = extractor.extract("Pricing is a lever. Use it carefully.", VOICE)
        assert contribution.structure_preference is StructurePreference.LINEAR


# ===================================================================
# attach_enthusiasm
# ===================================================================


class TestAttachEnthusiasm:

    def test_copies_energy_and_topics(self, extractor):
        contribution = extractor.extract("Teams build product. Teams ship product.", VOICE)
        analysis = EnthusiasmAnalysis(
            overall_energy=0.72,
            peak_moments=[
                PeakMoment(
                    timestamp=1.0,
                    text="Pricing experiments changed everything",
                    reason="Strong conviction",
                    use_as=PeakUse.HOOK,
                )
            ],
        )
        enriched = attach_enthusiasm(contribution, analysis)
        assert enriched.energy_level == 0.72
        assert enriched.topics_that_excite == ["pricing", "experiments"]
        assert contribution.energy_level is None
        assert enriched.frequent_words == contribution.frequent_words

"""
Linguistic Feature Extractor.

Turns one transcript or writing sample into a ``FeatureContribution``:
rhythm, vocabulary, signature phrases, rhetoric flags, formality, tonal
attributes and written patterns.  Pure and synchronous; the enthusiasm
fields are joined in afterwards with ``attach_enthusiasm()``.

Tonal attributes come from ``TONAL_SCORERS``, a table of independent
scorer functions.  None of them reads another's output, so they can run
in any order.
"""

import logging
import statistics
from collections import Counter
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from voice_engine.analysis.enthusiasm import extract_enthusiastic_topics
from voice_engine.analysis.lexicons import (
    ANALOGY_MARKERS,
    DISFLUENCIES,
    FILLER_PHRASES,
    NARRATIVE_MARKERS,
    PERSONAL_PRONOUNS,
    SEQUENCE_MARKERS,
    SLANG_WORDS,
    THESIS_MARKERS,
    TONAL_LEXICONS,
    BaselineFrequencies,
    count_phrase,
    is_content_word,
    is_contraction,
    split_sentences,
    tokenize,
)
from voice_engine.analysis.writing import (
    analyze_written_patterns,
    combine_written_analyses,
)
from voice_engine.config import FeatureConfig
from voice_engine.exceptions import ValidationError
from voice_engine.models import (
    ContributionKind,
    EnthusiasmAnalysis,
    FeatureContribution,
    LengthBucket,
    PaceVariation,
    StorytellingStyle,
    TonalAttributes,
)
from voice_engine.utils import clamp

logger = logging.getLogger(__name__)


# =============================================================================
# TEXT VIEW
# =============================================================================


class _TextView:
    """Tokenized view of a text shared by all scorers."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.sentences = split_sentences(text) or [text]
        self.sentence_tokens = [tokenize(s) for s in self.sentences]
        self.sentence_tokens = [t for t in self.sentence_tokens if t]
        self.tokens = [t for sent in self.sentence_tokens for t in sent]

    @property
    def n_tokens(self) -> int:
        return len(self.tokens)

    def rate(self, hits: float) -> float:
        return hits / self.n_tokens if self.n_tokens else 0.0

    def hits(self, phrases) -> int:
        return sum(count_phrase(p, self.tokens) for p in sorted(phrases))


# =============================================================================
# TONAL SCORERS
# =============================================================================

_TONE_BASE = 0.3
_TONE_GAIN = 10.0
_HEDGES = frozenset({"maybe", "perhaps", "i guess", "kind of", "sort of", "probably", "might"})
_INCLUSIVE = frozenset({"we", "us", "our", "together"})
_IMPERATIVE_STARTS = frozenset({
    "do", "don't", "stop", "start", "try", "make", "go", "take", "think",
    "look", "remember", "forget", "focus", "write", "ship", "build",
})


def _lexicon_score(view: _TextView, name: str) -> float:
    return view.rate(view.hits(TONAL_LEXICONS[name])) * _TONE_GAIN


def score_warmth(view: _TextView) -> float:
    inclusive = view.rate(sum(1 for t in view.tokens if t in _INCLUSIVE))
    return clamp(_TONE_BASE + _lexicon_score(view, "warmth") + inclusive * 2)


def score_authority(view: _TextView) -> float:
    numbers = view.rate(sum(1 for t in view.tokens if t.isdigit()))
    hedges = view.rate(view.hits(_HEDGES))
    return clamp(_TONE_BASE + _lexicon_score(view, "authority") + numbers * 5 - hedges * 5)


def score_humor(view: _TextView) -> float:
    emoticons = view.text.count(":)") + view.text.count(";)")
    return clamp(_TONE_BASE + _lexicon_score(view, "humor") + view.rate(emoticons) * _TONE_GAIN)


def score_directness(view: _TextView) -> float:
    imperative = sum(1 for sent in view.sentence_tokens if sent[0] in _IMPERATIVE_STARTS)
    imperative_share = imperative / len(view.sentence_tokens) if view.sentence_tokens else 0.0
    hedges = view.rate(view.hits(_HEDGES))
    return clamp(
        _TONE_BASE + _lexicon_score(view, "directness") + imperative_share * 0.4 - hedges * 5
    )


def score_empathy(view: _TextView) -> float:
    second_person = view.rate(sum(1 for t in view.tokens if t in ("you", "your")))
    return clamp(_TONE_BASE + _lexicon_score(view, "empathy") + second_person)


TONAL_SCORERS: Dict[str, Callable[[_TextView], float]] = {
    "warmth": score_warmth,
    "authority": score_authority,
    "humor": score_humor,
    "directness": score_directness,
    "empathy": score_empathy,
}


# =============================================================================
# EXTRACTOR
# =============================================================================


class FeatureExtractor:
    """
    Extracts per-contribution style features from text.

    Usage::

        extractor = FeatureExtractor()
        contribution = extractor.extract(transcript, ContributionKind.VOICE_SESSION)
    """

    def __init__(
        self,
        config: Optional[FeatureConfig] = None,
        baseline: Optional[BaselineFrequencies] = None,
    ) -> None:
        self.config = config or FeatureConfig()
        self.baseline = baseline or BaselineFrequencies.from_yaml(
            self.config.resolved_baseline_path()
        )

    def extract(
        self,
        text: str,
        kind: ContributionKind,
        written_samples: Optional[Sequence[str]] = None,
    ) -> FeatureContribution:
        """
        Extract features from *text*.

        Args:
            text: Transcript or writing sample.
            kind: Whether this is a voice session or a writing sample.
            written_samples: Prior writing samples.  When given, written
                patterns are voted across the text and the samples and
                formality is averaged over all of them.

        Raises:
            ValidationError: If *text* contains no words.
        """
        view = _TextView(text)
        if view.n_tokens == 0:
            raise ValidationError("Cannot extract features from text with no words")

        lengths = [len(s) for s in view.sentence_tokens]
        bucket = self._sentence_bucket(lengths)
        ranked = self._rank_vocabulary(view.tokens)

        samples = [s for s in (written_samples or []) if tokenize(s)]
        written = combine_written_analyses(
            [analyze_written_patterns(text, bucket, self.config)]
            + [analyze_written_patterns(s, None, self.config) for s in samples]
        )
        formality = statistics.fmean(
            [self._formality(view)] + [self._formality(_TextView(s)) for s in samples]
        )

        tonal = TonalAttributes(
            **{name: round(scorer(view), 4) for name, scorer in TONAL_SCORERS.items()}
        )

        contribution = FeatureContribution(
            kind=kind,
            avg_sentence_length=bucket,
            pace_variation=self._pace_variation(lengths),
            uses_questions=self._uses_questions(view),
            uses_analogies=view.hits(ANALOGY_MARKERS) > 0,
            storytelling_style=self._storytelling_style(view),
            frequent_words=[w for w, _ in ranked[:self.config.surface_top_k]],
            word_frequencies=dict(ranked[:self.config.internal_top_k]),
            signature_phrases=self._signature_phrases(view),
            filler_words=self._filler_words(view.tokens),
            structure_preference=written.structure_preference,
            formality=round(clamp(formality), 4),
            paragraph_length=written.paragraph_length,
            opening_style=written.opening_style,
            closing_style=written.closing_style,
            tonal_attributes=tonal,
            sentence_count=len(view.sentence_tokens),
            word_count=view.n_tokens,
        )
        logger.debug(
            "Extracted %s features: %d words, %d sentences, %d signature phrases",
            kind.value,
            contribution.word_count,
            contribution.sentence_count,
            len(contribution.signature_phrases),
        )
        return contribution

    # -----------------------------------------------------------------
    # RHYTHM
    # -----------------------------------------------------------------

    def _sentence_bucket(self, lengths: List[int]) -> LengthBucket:
        mean = statistics.fmean(lengths) if lengths else 0.0
        if mean < self.config.short_sentence_max:
            return LengthBucket.SHORT
        if mean > self.config.long_sentence_min:
            return LengthBucket.LONG
        return LengthBucket.MEDIUM

    @staticmethod
    def _pace_variation(lengths: List[int]) -> PaceVariation:
        if len(lengths) < 2:
            return PaceVariation.CONSISTENT
        mean = statistics.fmean(lengths)
        cv = statistics.pstdev(lengths) / mean if mean else 0.0
        if cv < 0.3:
            return PaceVariation.CONSISTENT
        if cv < 0.6:
            return PaceVariation.VARIED
        return PaceVariation.DYNAMIC

    # -----------------------------------------------------------------
    # VOCABULARY
    # -----------------------------------------------------------------

    @staticmethod
    def _rank_vocabulary(tokens: List[str]) -> List[Tuple[str, int]]:
        counts = Counter(t for t in tokens if is_content_word(t))
        return sorted(counts.items(), key=lambda item: (-item[1], item[0]))

    @staticmethod
    def _filler_words(tokens: List[str]) -> List[str]:
        counted = [(f, count_phrase(f, tokens)) for f in FILLER_PHRASES]
        used = [(f, c) for f, c in counted if c >= 2]
        order = {f: i for i, f in enumerate(FILLER_PHRASES)}
        return [f for f, _ in sorted(used, key=lambda fc: (-fc[1], order[fc[0]]))]

    def _signature_phrases(self, view: _TextView) -> List[str]:
        """
        2-4 grams used at least twice and far more often than in general
        English.  Sub-phrases of a kept longer phrase with no extra uses of
        their own are dropped.
        """
        cfg = self.config
        kept: List[Tuple[str, int, int]] = []  # (phrase, n, count)

        for n in (4, 3, 2):
            grams: Counter = Counter()
            for sent in view.sentence_tokens:
                for i in range(len(sent) - n + 1):
                    grams[tuple(sent[i:i + n])] += 1
            total = sum(grams.values())
            if not total:
                continue

            for gram, count in sorted(grams.items()):
                if count < cfg.signature_min_count:
                    continue
                if gram[0] in DISFLUENCIES or gram[-1] in DISFLUENCIES:
                    continue
                if not any(is_content_word(t) for t in gram):
                    continue
                phrase = " ".join(gram)
                if (count / total) / self.baseline.rate(phrase) < cfg.signature_ratio:
                    continue
                covered = any(
                    f" {phrase} " in f" {longer} " and longer_count >= count
                    for longer, _, longer_count in kept
                )
                if not covered:
                    kept.append((phrase, n, count))

        kept.sort(key=lambda item: (-item[2], -item[1], item[0]))
        return [phrase for phrase, _, _ in kept[:cfg.max_signature_phrases]]

    # -----------------------------------------------------------------
    # RHETORIC
    # -----------------------------------------------------------------

    def _uses_questions(self, view: _TextView) -> bool:
        questions = sum(1 for s in view.sentences if s.rstrip().endswith("?"))
        return questions / len(view.sentences) >= self.config.question_rate_threshold

    @staticmethod
    def _storytelling_style(view: _TextView) -> StorytellingStyle:
        narrative_total = view.hits(NARRATIVE_MARKERS)
        sequence_total = view.hits(SEQUENCE_MARKERS)
        if narrative_total and sequence_total >= 3:
            return StorytellingStyle.CHRONOLOGICAL

        third = max(1, len(view.sentence_tokens) // 3)
        opening = [t for sent in view.sentence_tokens[:third] for t in sent]
        story_first = sum(count_phrase(m, opening) for m in sorted(NARRATIVE_MARKERS))
        thesis_first = sum(count_phrase(m, opening) for m in sorted(THESIS_MARKERS))
        if story_first > thesis_first:
            return StorytellingStyle.ANECDOTE_FIRST
        if thesis_first > story_first:
            return StorytellingStyle.THESIS_FIRST
        return StorytellingStyle.MIXED

    # -----------------------------------------------------------------
    # FORMALITY
    # -----------------------------------------------------------------

    def _formality(self, view: _TextView) -> float:
        """Weighted blend of four formality signals, clamped to [0, 1]."""
        if not view.n_tokens:
            return 0.5
        tokens = view.tokens
        avg_word_len = statistics.fmean(len(t) for t in tokens)
        avg_sentence_len = statistics.fmean(len(s) for s in view.sentence_tokens)

        signals = {
            "contractions": 1.0 - clamp(view.rate(sum(1 for t in tokens if is_contraction(t))) * 10),
            "slang": 1.0 - clamp(view.rate(sum(1 for t in tokens if t in SLANG_WORDS)) * 20),
            "complexity": clamp(
                0.5 * min(avg_word_len / 8, 1.0) + 0.5 * min(avg_sentence_len / 30, 1.0)
            ),
            "pronouns": 1.0 - clamp(view.rate(sum(1 for t in tokens if t in PERSONAL_PRONOUNS)) * 8),
        }
        weights = self.config.formality_weights
        return clamp(sum(weights[name] * value for name, value in signals.items()))


def attach_enthusiasm(
    contribution: FeatureContribution, analysis: EnthusiasmAnalysis
) -> FeatureContribution:
    """Return a copy of *contribution* carrying the session's energy and topics."""
    return replace(
        contribution,
        energy_level=analysis.overall_energy,
        topics_that_excite=extract_enthusiastic_topics(analysis),
    )


__all__ = [
    "FeatureExtractor",
    "TONAL_SCORERS",
    "attach_enthusiasm",
    "score_warmth",
    "score_authority",
    "score_humor",
    "score_directness",
    "score_empathy",
]

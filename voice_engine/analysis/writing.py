"""
Written-pattern analysis: structure, paragraph length, opening and closing.

Runs for every contribution.  Spoken transcripts rarely carry paragraph
breaks, so when the text has none the caller's sentence-length bucket
stands in for the paragraph bucket.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence

from voice_engine.analysis.lexicons import (
    BULLET_RE,
    CTA_CLOSING_RE,
    HEADING_RE,
    HOOK_OPENING_RE,
    NARRATIVE_MARKERS,
    STORY_OPENING_RE,
    SUMMARY_CLOSING_RE,
    count_phrase,
    split_paragraphs,
    split_sentences,
    tokenize,
)
from voice_engine.config import FeatureConfig
from voice_engine.models import (
    ClosingStyle,
    LengthBucket,
    OpeningStyle,
    StructurePreference,
)

logger = logging.getLogger(__name__)

_MODULAR_MARKER_MIN = 2
_NARRATIVE_MARKER_MIN = 2


@dataclass
class WrittenAnalysis:
    structure_preference: StructurePreference
    paragraph_length: LengthBucket
    opening_style: OpeningStyle
    closing_style: ClosingStyle


def classify_opening(sentence: str) -> OpeningStyle:
    text = sentence.strip()
    if text.endswith("?"):
        return OpeningStyle.QUESTION
    if STORY_OPENING_RE.search(text):
        return OpeningStyle.STORY
    if HOOK_OPENING_RE.search(text) or text.endswith("!"):
        return OpeningStyle.HOOK
    return OpeningStyle.CONTEXT


def classify_closing(sentence: str) -> ClosingStyle:
    text = sentence.strip()
    if text.endswith("?"):
        return ClosingStyle.QUESTION
    if SUMMARY_CLOSING_RE.search(text):
        return ClosingStyle.SUMMARY
    if CTA_CLOSING_RE.search(text):
        return ClosingStyle.CTA
    return ClosingStyle.REFLECTION


def classify_structure(text: str) -> StructurePreference:
    markers = len(HEADING_RE.findall(text)) + len(BULLET_RE.findall(text))
    if markers >= _MODULAR_MARKER_MIN:
        return StructurePreference.MODULAR
    tokens = tokenize(text)
    narrative_hits = sum(count_phrase(m, tokens) for m in sorted(NARRATIVE_MARKERS))
    if narrative_hits >= _NARRATIVE_MARKER_MIN:
        return StructurePreference.NARRATIVE
    return StructurePreference.LINEAR


def analyze_written_patterns(
    text: str,
    sentence_bucket: Optional[LengthBucket] = None,
    config: Optional[FeatureConfig] = None,
) -> WrittenAnalysis:
    """
    Classify the written shape of *text*.

    Args:
        text: A transcript or writing sample.
        sentence_bucket: Fallback paragraph bucket for unparagraphed text.
        config: Paragraph thresholds; defaults to ``FeatureConfig()``.
    """
    config = config or FeatureConfig()
    sentences = split_sentences(text) or [text]

    paragraphs = split_paragraphs(text)
    if len(paragraphs) > 1:
        avg_words = sum(len(tokenize(p)) for p in paragraphs) / len(paragraphs)
        if avg_words < config.short_paragraph_words:
            paragraph_length = LengthBucket.SHORT
        elif avg_words > config.long_paragraph_words:
            paragraph_length = LengthBucket.LONG
        else:
            paragraph_length = LengthBucket.MEDIUM
    else:
        paragraph_length = sentence_bucket or LengthBucket.MEDIUM

    return WrittenAnalysis(
        structure_preference=classify_structure(text),
        paragraph_length=paragraph_length,
        opening_style=classify_opening(sentences[0]),
        closing_style=classify_closing(sentences[-1]),
    )


def combine_written_analyses(analyses: Sequence[WrittenAnalysis]) -> WrittenAnalysis:
    """
    Majority vote per field across several analyses.

    Ties go to the value seen first.
    """
    if not analyses:
        raise ValueError("combine_written_analyses() needs at least one analysis")

    def vote(values: List):
        counts = Counter(values)
        best = max(counts.values())
        return next(v for v in values if counts[v] == best)

    return WrittenAnalysis(
        structure_preference=vote([a.structure_preference for a in analyses]),
        paragraph_length=vote([a.paragraph_length for a in analyses]),
        opening_style=vote([a.opening_style for a in analyses]),
        closing_style=vote([a.closing_style for a in analyses]),
    )


__all__ = [
    "WrittenAnalysis",
    "analyze_written_patterns",
    "combine_written_analyses",
    "classify_opening",
    "classify_closing",
    "classify_structure",
]

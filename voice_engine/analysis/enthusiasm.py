"""
Enthusiasm Analyzer: energy map over a word-timestamp stream.

Turns the word-level timestamps of one recording into pace-delimited
segments, scores each segment's energy from four normalized signals
(relative pace, lexical density, emphasis words, local repetition), and
picks up to five peak moments with a suggested use in generated content.

Pure and synchronous.  Malformed input raises ``MalformedTimestampsError``
before any work is done; an empty stream yields ``EnthusiasmAnalysis.empty()``.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from voice_engine.analysis.lexicons import (
    EMPHASIS_WORDS,
    FILLER_PHRASES,
    is_content_word,
    tokenize,
)
from voice_engine.config import EnthusiasmConfig
from voice_engine.exceptions import MalformedTimestampsError
from voice_engine.models import (
    EnthusiasmAnalysis,
    EnthusiasmIndicator,
    EnthusiasmSegment,
    PeakMoment,
    PeakUse,
    WordTimestamp,
)
from voice_engine.utils import clamp

logger = logging.getLogger(__name__)

# Normalization gain for ratio signals: a quarter of the words carrying the
# signal saturates it.
_RATIO_GAIN = 4.0
_REPETITION_LOOKAHEAD = 3
_MAX_TOPICS = 5

_SINGLE_FILLERS = frozenset(p for p in FILLER_PHRASES if " " not in p)
_NON_QUOTABLE_STARTS = frozenset({
    "and", "but", "so", "because", "or", "then", "um", "uh", "like", "also",
})

PEAK_REASONS: Dict[EnthusiasmIndicator, str] = {
    EnthusiasmIndicator.PACE_INCREASE: "Fast-paced, excited delivery",
    EnthusiasmIndicator.EMPHASIS_WORDS: "Strong emphasis and conviction",
    EnthusiasmIndicator.REPETITION: "Repeated emphasis on key points",
}
DEFAULT_PEAK_REASON = "High energy detected"


@dataclass
class _SegmentStats:
    """Raw measurements of one segment before normalization."""

    words: List[WordTimestamp]
    display: List[str]
    tokens: List[str]
    pace: float
    voiced_ratio: float
    emphasis_count: int
    repetition_count: int

    @property
    def start(self) -> float:
        return self.words[0].start

    @property
    def end(self) -> float:
        return self.words[-1].end

    @property
    def text(self) -> str:
        return " ".join(self.display).strip()


# =============================================================================
# VALIDATION
# =============================================================================


def validate_timestamps(word_timestamps: Sequence[WordTimestamp]) -> None:
    """
    Check ordering and interval sanity of a timestamp stream.

    Raises:
        MalformedTimestampsError: On the first offending timestamp.
    """
    prev: Optional[WordTimestamp] = None
    for index, wt in enumerate(word_timestamps):
        if wt.start < 0:
            raise MalformedTimestampsError(index, f"negative start {wt.start}")
        if not wt.start < wt.end:
            raise MalformedTimestampsError(
                index, f"start {wt.start} is not before end {wt.end}"
            )
        if prev is not None:
            if wt.start < prev.start:
                raise MalformedTimestampsError(
                    index, f"start {wt.start} precedes previous start {prev.start}"
                )
            if wt.start < prev.end:
                raise MalformedTimestampsError(
                    index, f"overlaps previous word ending at {prev.end}"
                )
        prev = wt


# =============================================================================
# ANALYZER
# =============================================================================


def _pace(words: Sequence[WordTimestamp]) -> float:
    """Words per second across the span of *words*."""
    duration = words[-1].end - words[0].start
    if duration <= 0:
        return 0.0
    return len(words) / duration


def _count_repetitions(tokens: List[str]) -> int:
    """Words recurring within the next few positions plus repeated bigrams."""
    repeats = 0
    for i, token in enumerate(tokens):
        if len(token) <= 2:
            continue
        if token in tokens[i + 1:i + 1 + _REPETITION_LOOKAHEAD]:
            repeats += 1

    bigrams = [
        (a, b) for a, b in zip(tokens, tokens[1:])
        if len(a) > 2 or len(b) > 2
    ]
    repeats += len(bigrams) - len(set(bigrams))
    return repeats


class EnthusiasmAnalyzer:
    """
    Segments a timestamp stream and scores its energy.

    Usage::

        analyzer = EnthusiasmAnalyzer()
        analysis = analyzer.analyze(result.word_timestamps, result.transcript)
    """

    def __init__(self, config: Optional[EnthusiasmConfig] = None) -> None:
        self.config = config or EnthusiasmConfig()

    def analyze(
        self,
        word_timestamps: Sequence[WordTimestamp],
        transcript: Optional[str] = None,
    ) -> EnthusiasmAnalysis:
        """
        Build the energy map of one session.

        Args:
            word_timestamps: Ordered word timestamps.
            transcript: Optional punctuated transcript.  When it has exactly
                one whitespace-separated word per timestamp, its words are
                used for segment and peak text so punctuation survives.

        Raises:
            MalformedTimestampsError: If timestamps overlap, are inverted or
                are out of order.
        """
        validate_timestamps(word_timestamps)
        if not word_timestamps:
            return EnthusiasmAnalysis.empty()

        display = [wt.word for wt in word_timestamps]
        if transcript:
            transcript_words = transcript.split()
            if len(transcript_words) == len(word_timestamps):
                display = transcript_words

        groups = self._segment(word_timestamps)
        stats = self._measure(word_timestamps, groups, display)

        voiced_time = sum(s.end - s.start for s in stats)
        session_pace = len(word_timestamps) / voiced_time if voiced_time > 0 else 0.0

        segments = [self._score(s, session_pace) for s in stats]

        total_duration = sum(seg.duration for seg in segments)
        overall = (
            sum(seg.energy_score * seg.duration for seg in segments) / total_duration
            if total_duration > 0
            else 0.0
        )
        overall = round(clamp(overall), 4)

        peaks = self._select_peaks(segments, stats, overall)

        logger.debug(
            "Enthusiasm: %d words -> %d segments, overall %.3f, %d peaks",
            len(word_timestamps),
            len(segments),
            overall,
            len(peaks),
        )
        return EnthusiasmAnalysis(
            overall_energy=overall,
            segments=segments,
            peak_moments=peaks,
        )

    # -----------------------------------------------------------------
    # SEGMENTATION
    # -----------------------------------------------------------------

    def _segment(self, words: Sequence[WordTimestamp]) -> List[List[int]]:
        """Partition word indices on silence gaps and pace shifts."""
        cfg = self.config
        groups: List[List[int]] = [[0]]

        for k in range(1, len(words)):
            current = groups[-1]
            gap = words[k].start - words[k - 1].end
            boundary = gap > cfg.silence_gap_seconds

            if not boundary and len(current) >= cfg.min_segment_words:
                running = _pace([words[i] for i in current])
                window_idx = current[-(cfg.pace_window_words - 1):] + [k]
                local = _pace([words[i] for i in window_idx])
                boundary = abs(local - running) > cfg.pace_delta_wps

            if boundary:
                groups.append([k])
            else:
                current.append(k)

        return groups

    @staticmethod
    def _measure(
        words: Sequence[WordTimestamp],
        groups: List[List[int]],
        display: List[str],
    ) -> List[_SegmentStats]:
        stats: List[_SegmentStats] = []
        for group in groups:
            seg_words = [words[i] for i in group]
            tokens = [t for i in group for t in tokenize(words[i].word)]
            span = seg_words[-1].end - seg_words[0].start
            voiced = sum(w.end - w.start for w in seg_words)
            stats.append(_SegmentStats(
                words=seg_words,
                display=[display[i] for i in group],
                tokens=tokens,
                pace=_pace(seg_words),
                voiced_ratio=voiced / span if span > 0 else 0.0,
                emphasis_count=sum(1 for t in tokens if t in EMPHASIS_WORDS),
                repetition_count=_count_repetitions(tokens),
            ))
        return stats

    # -----------------------------------------------------------------
    # SCORING
    # -----------------------------------------------------------------

    def _score(self, stats: _SegmentStats, session_pace: float) -> EnthusiasmSegment:
        cfg = self.config
        n_tokens = max(len(stats.tokens), 1)

        relative_pace = stats.pace / session_pace if session_pace > 0 else 1.0
        content = [t for t in stats.tokens if is_content_word(t) and t not in _SINGLE_FILLERS]

        signals = {
            "pace": clamp(relative_pace - 0.5),
            "density": len(content) / n_tokens if stats.tokens else 0.0,
            "emphasis": clamp(stats.emphasis_count / n_tokens * _RATIO_GAIN),
            "repetition": clamp(stats.repetition_count / n_tokens * _RATIO_GAIN),
        }
        energy = clamp(sum(cfg.signal_weights[name] * value for name, value in signals.items()))

        flagged = {
            EnthusiasmIndicator.PACE_INCREASE: relative_pace > cfg.pace_increase_ratio,
            EnthusiasmIndicator.DENSE_SPEECH: stats.voiced_ratio > cfg.dense_speech_ratio,
            EnthusiasmIndicator.EMPHASIS_WORDS: stats.emphasis_count > 0,
            EnthusiasmIndicator.REPETITION: stats.repetition_count > 0,
        }
        indicators = [ind for ind in EnthusiasmIndicator if flagged[ind]]

        return EnthusiasmSegment(
            start_time=stats.start,
            end_time=stats.end,
            text=stats.text,
            energy_score=round(energy, 4),
            indicators=indicators,
        )

    # -----------------------------------------------------------------
    # PEAKS
    # -----------------------------------------------------------------

    def _select_peaks(
        self,
        segments: List[EnthusiasmSegment],
        stats: List[_SegmentStats],
        overall: float,
    ) -> List[PeakMoment]:
        cfg = self.config
        threshold = max(cfg.peak_energy_floor, overall)

        session_start = segments[0].start_time
        session_span = segments[-1].end_time - session_start

        candidates = [
            (seg, st) for seg, st in zip(segments, stats)
            if seg.energy_score >= threshold
        ]
        candidates.sort(key=lambda pair: (-pair[0].energy_score, pair[0].start_time))

        peaks: List[PeakMoment] = []
        for seg, st in candidates[:cfg.max_peak_moments]:
            midpoint = (seg.start_time + seg.end_time) / 2
            position = (midpoint - session_start) / session_span if session_span > 0 else 0.0
            peaks.append(PeakMoment(
                timestamp=seg.start_time,
                text=seg.text,
                reason=self._reason(seg.indicators),
                use_as=self._use_as(position, st),
            ))
        return peaks

    @staticmethod
    def _reason(indicators: List[EnthusiasmIndicator]) -> str:
        for indicator, reason in PEAK_REASONS.items():
            if indicator in indicators:
                return reason
        return DEFAULT_PEAK_REASON

    def _use_as(self, position: float, stats: _SegmentStats) -> PeakUse:
        cfg = self.config
        if position <= cfg.hook_position:
            return PeakUse.HOOK
        if position >= cfg.conclusion_position:
            return PeakUse.CONCLUSION
        if self._is_quotable(stats):
            return PeakUse.QUOTE
        return PeakUse.KEY_POINT

    def _is_quotable(self, stats: _SegmentStats) -> bool:
        """Short, self-contained and declarative."""
        cfg = self.config
        if not cfg.quote_min_words <= len(stats.tokens) <= cfg.quote_max_words:
            return False
        text = stats.text
        if "?" in text:
            return False
        return stats.tokens[0] not in _NON_QUOTABLE_STARTS


# =============================================================================
# TOPICS
# =============================================================================


def extract_enthusiastic_topics(analysis: EnthusiasmAnalysis) -> List[str]:
    """
    Salient words from the peak moments, in peak order.

    Takes the first two content words longer than four letters from each
    peak (emphasis words excluded), at most five overall.
    """
    topics: List[str] = []
    for moment in analysis.peak_moments:
        picked = 0
        for token in tokenize(moment.text):
            if picked == 2:
                break
            if len(token) <= 4 or token in EMPHASIS_WORDS or not is_content_word(token):
                continue
            picked += 1
            if token not in topics:
                topics.append(token)
    return topics[:_MAX_TOPICS]


__all__ = [
    "EnthusiasmAnalyzer",
    "validate_timestamps",
    "extract_enthusiastic_topics",
    "PEAK_REASONS",
    "DEFAULT_PEAK_REASON",
]

"""
Centralized shared data types for the Voice Profile Engine.

Every component reads and writes the types defined here.  Referent models
live next to the catalog in ``voice_engine.referents.catalog``.

Hierarchy of types
------------------
- **Enums**: ``LengthBucket``, ``PaceVariation``, ``StorytellingStyle``,
  ``StructurePreference``, ``OpeningStyle``, ``ClosingStyle``, ``RuleType``,
  ``EnthusiasmIndicator``, ``PeakUse``, ``ResponseType``,
  ``ContributionKind``, ``ProfileState``, ``CalibrationLevel``,
  ``OutlineSectionType``
- **Transcription input**: ``WordTimestamp``, ``TranscriptionResult``
- **Enthusiasm models**: ``EnthusiasmSegment``, ``PeakMoment``,
  ``EnthusiasmAnalysis``
- **Voice DNA**: ``Rhythm``, ``Rhetoric``, ``Vocabulary``,
  ``EnthusiasmPattern``, ``SpokenPatterns``, ``WrittenPatterns``,
  ``TonalAttributes``, ``LearnedRule``, ``ReferentWeight``,
  ``ReferentInfluences``, ``CategoryVote``, ``VoiceDNA``
- **Extractor output**: ``FeatureContribution``
- **Calibration**: ``CalibrationInsight``, ``CalibrationRound``
- **Generation input**: ``OutlineSection``, ``ContentOutline``,
  ``FollowUpQuestion``, ``FollowUpResponse``, ``GenerationRequest``
- **Results**: ``AggregationResult``, ``VoiceDNASummary``

All persisted models expose ``to_dict()`` / ``from_dict()`` so the storage
adapters only ever see JSON-compatible primitives.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from voice_engine.utils import generate_id, parse_timestamp, utc_now


# =============================================================================
# ENUMS
# =============================================================================


class LengthBucket(str, Enum):
    """Short / medium / long bucket for sentences and paragraphs."""

    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class PaceVariation(str, Enum):
    CONSISTENT = "consistent"
    VARIED = "varied"
    DYNAMIC = "dynamic"


class StorytellingStyle(str, Enum):
    """How the speaker orders a story relative to its point."""

    CHRONOLOGICAL = "chronological"
    ANECDOTE_FIRST = "anecdote_first"
    THESIS_FIRST = "thesis_first"
    MIXED = "mixed"


class StructurePreference(str, Enum):
    LINEAR = "linear"
    MODULAR = "modular"
    NARRATIVE = "narrative"


class OpeningStyle(str, Enum):
    HOOK = "hook"
    CONTEXT = "context"
    QUESTION = "question"
    STORY = "story"


class ClosingStyle(str, Enum):
    CTA = "cta"
    SUMMARY = "summary"
    QUESTION = "question"
    REFLECTION = "reflection"


class RuleType(str, Enum):
    """Category of a learned rule or calibration insight."""

    STYLE_PREFERENCE = "style_preference"
    TONE_ADJUSTMENT = "tone_adjustment"
    VOCABULARY = "vocabulary"
    STRUCTURE = "structure"


class EnthusiasmIndicator(str, Enum):
    """
    Why a segment was flagged as energetic.

    Declaration order is the canonical order indicators are reported in.
    """

    PACE_INCREASE = "pace_increase"
    DENSE_SPEECH = "dense_speech"
    EMPHASIS_WORDS = "emphasis_words"
    REPETITION = "repetition"


class PeakUse(str, Enum):
    """Suggested role of a peak moment in generated content."""

    HOOK = "hook"
    KEY_POINT = "key_point"
    CONCLUSION = "conclusion"
    QUOTE = "quote"


class ResponseType(str, Enum):
    VOICE = "voice"
    TEXT = "text"
    SKIP = "skip"


class ContributionKind(str, Enum):
    """Source of a feature contribution."""

    VOICE_SESSION = "voice_session"
    WRITING_SAMPLE = "writing_sample"


class ProfileState(str, Enum):
    """
    Lifecycle state derived from a profile's counters and score.

    ``NONE``: no profile or no contributions yet.
    ``NASCENT``: at least one contribution, score below the calibrated
    threshold.
    ``CALIBRATED``: score at or above the calibrated threshold.
    """

    NONE = "none"
    NASCENT = "nascent"
    CALIBRATED = "calibrated"


class CalibrationLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OutlineSectionType(str, Enum):
    INTRO = "intro"
    MAIN_POINT = "main_point"
    EXAMPLE = "example"
    CONCLUSION = "conclusion"


# =============================================================================
# CONSTANTS
# =============================================================================

TONAL_ATTRIBUTE_NAMES: List[str] = [
    "warmth",
    "authority",
    "humor",
    "directness",
    "empathy",
]

# Categorical profile fields decided by majority vote.  Order is the order
# votes are cast and reported in.
CATEGORICAL_FIELDS: List[str] = [
    "avg_sentence_length",
    "pace_variation",
    "storytelling_style",
    "uses_questions",
    "uses_analogies",
    "structure_preference",
    "paragraph_length",
    "opening_style",
    "closing_style",
]


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# =============================================================================
# TRANSCRIPTION INPUT
# =============================================================================


@dataclass
class WordTimestamp:
    """A single recognized word with its start/end offsets in seconds."""

    word: str
    start: float
    end: float
    confidence: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "word": self.word,
            "start": self.start,
            "end": self.end,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WordTimestamp:
        return cls(
            word=str(data["word"]),
            start=float(data["start"]),
            end=float(data["end"]),
            confidence=float(data.get("confidence", 1.0)),
        )


@dataclass
class TranscriptionResult:
    """Output of the upstream speech-to-text service."""

    transcript: str
    word_timestamps: List[WordTimestamp] = field(default_factory=list)
    duration_seconds: float = 0.0
    language: str = "en"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TranscriptionResult:
        timestamps = data.get("word_timestamps") or data.get("wordTimestamps") or []
        return cls(
            transcript=data.get("transcript", ""),
            word_timestamps=[WordTimestamp.from_dict(w) for w in timestamps],
            duration_seconds=float(
                data.get("duration_seconds", data.get("duration", 0.0)) or 0.0
            ),
            language=data.get("language", "en"),
        )


# =============================================================================
# ENTHUSIASM MODELS
# =============================================================================


@dataclass
class EnthusiasmSegment:
    """A contiguous stretch of speech with its energy score."""

    start_time: float
    end_time: float
    text: str
    energy_score: float
    indicators: List[EnthusiasmIndicator] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "text": self.text,
            "energy_score": self.energy_score,
            "indicators": [i.value for i in self.indicators],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EnthusiasmSegment:
        return cls(
            start_time=float(data["start_time"]),
            end_time=float(data["end_time"]),
            text=data["text"],
            energy_score=float(data["energy_score"]),
            indicators=[EnthusiasmIndicator(i) for i in data.get("indicators", [])],
        )


@dataclass
class PeakMoment:
    """A high-energy moment worth reusing in generated content."""

    timestamp: float
    text: str
    reason: str
    use_as: PeakUse

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "text": self.text,
            "reason": self.reason,
            "use_as": self.use_as.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PeakMoment:
        return cls(
            timestamp=float(data["timestamp"]),
            text=data["text"],
            reason=data["reason"],
            use_as=PeakUse(data["use_as"]),
        )


@dataclass
class EnthusiasmAnalysis:
    """Energy map of one recording session."""

    overall_energy: float = 0.0
    segments: List[EnthusiasmSegment] = field(default_factory=list)
    peak_moments: List[PeakMoment] = field(default_factory=list)

    @classmethod
    def empty(cls) -> EnthusiasmAnalysis:
        """The analysis of an empty timestamp stream."""
        return cls(overall_energy=0.0, segments=[], peak_moments=[])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_energy": self.overall_energy,
            "segments": [s.to_dict() for s in self.segments],
            "peak_moments": [p.to_dict() for p in self.peak_moments],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EnthusiasmAnalysis:
        return cls(
            overall_energy=float(data.get("overall_energy", 0.0)),
            segments=[EnthusiasmSegment.from_dict(s) for s in data.get("segments", [])],
            peak_moments=[PeakMoment.from_dict(p) for p in data.get("peak_moments", [])],
        )


# =============================================================================
# VOICE DNA
# =============================================================================


@dataclass
class Rhythm:
    avg_sentence_length: LengthBucket = LengthBucket.MEDIUM
    pace_variation: PaceVariation = PaceVariation.VARIED


@dataclass
class Rhetoric:
    uses_questions: bool = False
    uses_analogies: bool = False
    storytelling_style: StorytellingStyle = StorytellingStyle.MIXED


@dataclass
class Vocabulary:
    """Surfaced vocabulary.  ``frequent_words`` is ranked, most used first."""

    frequent_words: List[str] = field(default_factory=list)
    signature_phrases: List[str] = field(default_factory=list)
    filler_words: List[str] = field(default_factory=list)


@dataclass
class EnthusiasmPattern:
    topics_that_excite: List[str] = field(default_factory=list)
    energy_baseline: float = 0.5


@dataclass
class SpokenPatterns:
    rhythm: Rhythm = field(default_factory=Rhythm)
    rhetoric: Rhetoric = field(default_factory=Rhetoric)
    vocabulary: Vocabulary = field(default_factory=Vocabulary)
    enthusiasm: EnthusiasmPattern = field(default_factory=EnthusiasmPattern)


@dataclass
class WrittenPatterns:
    structure_preference: StructurePreference = StructurePreference.LINEAR
    formality: float = 0.5  # 0=casual, 1=formal
    paragraph_length: LengthBucket = LengthBucket.MEDIUM
    opening_style: OpeningStyle = OpeningStyle.CONTEXT
    closing_style: ClosingStyle = ClosingStyle.SUMMARY


@dataclass
class TonalAttributes:
    """Five independent tone scores, each in ``[0, 1]``."""

    warmth: float = 0.5
    authority: float = 0.5
    humor: float = 0.5
    directness: float = 0.5
    empathy: float = 0.5

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in TONAL_ATTRIBUTE_NAMES}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TonalAttributes:
        return cls(**{name: float(data.get(name, 0.5)) for name in TONAL_ATTRIBUTE_NAMES})


@dataclass
class LearnedRule:
    """
    A style rule learned from calibration feedback.

    ``source_count`` counts how many insights were merged into this rule
    (always 1 unless similarity merging is enabled).
    """

    type: RuleType
    content: str
    confidence: float
    source_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "content": self.content,
            "confidence": self.confidence,
            "source_count": self.source_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> LearnedRule:
        return cls(
            type=RuleType(data["type"]),
            content=data["content"],
            confidence=float(data["confidence"]),
            source_count=int(data.get("source_count", 1)),
        )


@dataclass
class ReferentWeight:
    """One resolved referent inside a blend."""

    referent_id: str
    name: str
    weight: int
    active_traits: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.referent_id,
            "name": self.name,
            "weight": self.weight,
            "active_traits": list(self.active_traits),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ReferentWeight:
        return cls(
            referent_id=data["id"],
            name=data["name"],
            weight=int(data["weight"]),
            active_traits=list(data.get("active_traits", [])),
        )


@dataclass
class ReferentInfluences:
    """
    A resolved style blend.

    Invariants: ``user_weight >= 50`` and ``user_weight + sum(weights) == 100``.
    """

    user_weight: int = 100
    referents: List[ReferentWeight] = field(default_factory=list)

    @property
    def referent_total(self) -> int:
        return sum(r.weight for r in self.referents)

    def violations(self) -> List[str]:
        """Return the list of broken blend invariants (empty when valid)."""
        problems: List[str] = []
        if self.user_weight < 50:
            problems.append(f"user_weight {self.user_weight} is below 50")
        if self.user_weight + self.referent_total != 100:
            problems.append(
                f"user_weight {self.user_weight} + referent weights "
                f"{self.referent_total} != 100"
            )
        for ref in self.referents:
            if ref.weight < 0:
                problems.append(f"referent '{ref.referent_id}' has negative weight")
            if len(ref.active_traits) > 3:
                problems.append(
                    f"referent '{ref.referent_id}' has more than 3 active traits"
                )
        return problems

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_weight": self.user_weight,
            "referents": [r.to_dict() for r in self.referents],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ReferentInfluences:
        return cls(
            user_weight=int(data.get("user_weight", 100)),
            referents=[ReferentWeight.from_dict(r) for r in data.get("referents", [])],
        )


@dataclass
class CategoryVote:
    """Vote tally for one value of a categorical field."""

    count: int = 0
    last_seen: int = 0  # contribution sequence number of the latest vote

    def to_dict(self) -> Dict[str, int]:
        return {"count": self.count, "last_seen": self.last_seen}


@dataclass
class VoiceDNA:
    """
    Persistent per-user style profile.

    The surfaced patterns are what the composer renders.  The bookkeeping
    fields at the bottom (``word_frequencies``, ``category_votes``,
    ``contribution_history``, ``applied_calibration_rounds``) keep merges
    exact and repeatable across storage round trips.
    """

    spoken_patterns: SpokenPatterns = field(default_factory=SpokenPatterns)
    written_patterns: WrittenPatterns = field(default_factory=WrittenPatterns)
    tonal_attributes: TonalAttributes = field(default_factory=TonalAttributes)
    learned_rules: List[LearnedRule] = field(default_factory=list)
    referent_influences: Optional[ReferentInfluences] = None
    calibration_score: int = 0

    # Counters
    voice_sessions_analyzed: int = 0
    writing_samples_analyzed: int = 0
    calibration_rounds_completed: int = 0

    # Bookkeeping
    word_frequencies: Dict[str, int] = field(default_factory=dict)
    category_votes: Dict[str, Dict[str, CategoryVote]] = field(default_factory=dict)
    contribution_history: List[datetime] = field(default_factory=list)
    applied_calibration_rounds: List[str] = field(default_factory=list)

    # Metadata
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def feature_contributions(self) -> int:
        """Voice sessions plus writing samples merged so far."""
        return self.voice_sessions_analyzed + self.writing_samples_analyzed

    @property
    def total_contributions(self) -> int:
        """Every contributing event, calibration rounds included."""
        return self.feature_contributions + self.calibration_rounds_completed

    def to_dict(self) -> Dict[str, Any]:
        sp = self.spoken_patterns
        wp = self.written_patterns
        return {
            "spoken_patterns": {
                "rhythm": {
                    "avg_sentence_length": sp.rhythm.avg_sentence_length.value,
                    "pace_variation": sp.rhythm.pace_variation.value,
                },
                "rhetoric": {
                    "uses_questions": sp.rhetoric.uses_questions,
                    "uses_analogies": sp.rhetoric.uses_analogies,
                    "storytelling_style": sp.rhetoric.storytelling_style.value,
                },
                "vocabulary": {
                    "frequent_words": list(sp.vocabulary.frequent_words),
                    "signature_phrases": list(sp.vocabulary.signature_phrases),
                    "filler_words": list(sp.vocabulary.filler_words),
                },
                "enthusiasm": {
                    "topics_that_excite": list(sp.enthusiasm.topics_that_excite),
                    "energy_baseline": sp.enthusiasm.energy_baseline,
                },
            },
            "written_patterns": {
                "structure_preference": wp.structure_preference.value,
                "formality": wp.formality,
                "paragraph_length": wp.paragraph_length.value,
                "opening_style": wp.opening_style.value,
                "closing_style": wp.closing_style.value,
            },
            "tonal_attributes": self.tonal_attributes.as_dict(),
            "learned_rules": [r.to_dict() for r in self.learned_rules],
            "referent_influences": (
                self.referent_influences.to_dict()
                if self.referent_influences is not None
                else None
            ),
            "calibration_score": self.calibration_score,
            "voice_sessions_analyzed": self.voice_sessions_analyzed,
            "writing_samples_analyzed": self.writing_samples_analyzed,
            "calibration_rounds_completed": self.calibration_rounds_completed,
            "word_frequencies": dict(self.word_frequencies),
            "category_votes": {
                name: {value: vote.to_dict() for value, vote in votes.items()}
                for name, votes in self.category_votes.items()
            },
            "contribution_history": [_iso(ts) for ts in self.contribution_history],
            "applied_calibration_rounds": list(self.applied_calibration_rounds),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VoiceDNA:
        spoken = data.get("spoken_patterns") or {}
        rhythm = spoken.get("rhythm") or {}
        rhetoric = spoken.get("rhetoric") or {}
        vocab = spoken.get("vocabulary") or {}
        enth = spoken.get("enthusiasm") or {}
        written = data.get("written_patterns") or {}
        influences = data.get("referent_influences")

        return cls(
            spoken_patterns=SpokenPatterns(
                rhythm=Rhythm(
                    avg_sentence_length=LengthBucket(
                        rhythm.get("avg_sentence_length", "medium")
                    ),
                    pace_variation=PaceVariation(rhythm.get("pace_variation", "varied")),
                ),
                rhetoric=Rhetoric(
                    uses_questions=bool(rhetoric.get("uses_questions", False)),
                    uses_analogies=bool(rhetoric.get("uses_analogies", False)),
                    storytelling_style=StorytellingStyle(
                        rhetoric.get("storytelling_style", "mixed")
                    ),
                ),
                vocabulary=Vocabulary(
                    frequent_words=list(vocab.get("frequent_words", [])),
                    signature_phrases=list(vocab.get("signature_phrases", [])),
                    filler_words=list(vocab.get("filler_words", [])),
                ),
                enthusiasm=EnthusiasmPattern(
                    topics_that_excite=list(enth.get("topics_that_excite", [])),
                    energy_baseline=float(enth.get("energy_baseline", 0.5)),
                ),
            ),
            written_patterns=WrittenPatterns(
                structure_preference=StructurePreference(
                    written.get("structure_preference", "linear")
                ),
                formality=float(written.get("formality", 0.5)),
                paragraph_length=LengthBucket(written.get("paragraph_length", "medium")),
                opening_style=OpeningStyle(written.get("opening_style", "context")),
                closing_style=ClosingStyle(written.get("closing_style", "summary")),
            ),
            tonal_attributes=TonalAttributes.from_dict(data.get("tonal_attributes") or {}),
            learned_rules=[LearnedRule.from_dict(r) for r in data.get("learned_rules", [])],
            referent_influences=(
                ReferentInfluences.from_dict(influences) if influences else None
            ),
            calibration_score=int(data.get("calibration_score", 0)),
            voice_sessions_analyzed=int(data.get("voice_sessions_analyzed", 0)),
            writing_samples_analyzed=int(data.get("writing_samples_analyzed", 0)),
            calibration_rounds_completed=int(data.get("calibration_rounds_completed", 0)),
            word_frequencies={
                str(k): int(v) for k, v in (data.get("word_frequencies") or {}).items()
            },
            category_votes={
                name: {
                    value: CategoryVote(count=int(v["count"]), last_seen=int(v["last_seen"]))
                    for value, v in votes.items()
                }
                for name, votes in (data.get("category_votes") or {}).items()
            },
            contribution_history=[
                parse_timestamp(ts) for ts in data.get("contribution_history", []) if ts
            ],
            applied_calibration_rounds=[
                str(r) for r in data.get("applied_calibration_rounds") or []
            ],
            created_at=parse_timestamp(data.get("created_at")) or utc_now(),
            updated_at=parse_timestamp(data.get("updated_at")) or utc_now(),
        )


# =============================================================================
# EXTRACTOR OUTPUT
# =============================================================================


@dataclass
class FeatureContribution:
    """
    Features extracted from one voice session or writing sample.

    ``word_frequencies`` holds the internal content-word table (top 50 by
    default); ``frequent_words`` is the surfaced top 10 of the same ranking.
    ``energy_level`` is ``None`` for writing samples, which carry no
    delivery information.
    """

    kind: ContributionKind

    # Spoken patterns
    avg_sentence_length: LengthBucket
    pace_variation: PaceVariation
    uses_questions: bool
    uses_analogies: bool
    storytelling_style: StorytellingStyle
    frequent_words: List[str]
    word_frequencies: Dict[str, int]
    signature_phrases: List[str]
    filler_words: List[str]

    # Written patterns
    structure_preference: StructurePreference
    formality: float
    paragraph_length: LengthBucket
    opening_style: OpeningStyle
    closing_style: ClosingStyle

    tonal_attributes: TonalAttributes

    # Enthusiasm (voice sessions only)
    energy_level: Optional[float] = None
    topics_that_excite: List[str] = field(default_factory=list)

    sentence_count: int = 0
    word_count: int = 0
    occurred_at: datetime = field(default_factory=utc_now)

    def categorical_values(self) -> Dict[str, str]:
        """Vote values for every categorical field, as strings."""
        return {
            "avg_sentence_length": self.avg_sentence_length.value,
            "pace_variation": self.pace_variation.value,
            "storytelling_style": self.storytelling_style.value,
            "uses_questions": "true" if self.uses_questions else "false",
            "uses_analogies": "true" if self.uses_analogies else "false",
            "structure_preference": self.structure_preference.value,
            "paragraph_length": self.paragraph_length.value,
            "opening_style": self.opening_style.value,
            "closing_style": self.closing_style.value,
        }


# =============================================================================
# CALIBRATION
# =============================================================================


@dataclass
class CalibrationInsight:
    """A style insight extracted from feedback on a calibration sample."""

    type: RuleType
    insight: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "insight": self.insight, "confidence": self.confidence}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CalibrationInsight:
        return cls(
            type=RuleType(data["type"]),
            insight=data["insight"],
            confidence=float(data["confidence"]),
        )


@dataclass
class CalibrationRound:
    """
    One prompt -> response -> sample -> rating cycle.

    Once ``rating`` is set the round is immutable, except that feedback
    fields that are still empty may be filled in exactly once.
    """

    round_number: int
    prompt_text: str
    id: str = field(default_factory=generate_id)
    user_response: Optional[str] = None
    response_type: Optional[ResponseType] = None
    generated_sample: Optional[str] = None
    rating: Optional[int] = None
    feedback_text: Optional[str] = None
    feedback_transcript: Optional[str] = None
    insights_extracted: List[CalibrationInsight] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_rated(self) -> bool:
        return self.rating is not None

    @property
    def has_feedback(self) -> bool:
        return bool(self.feedback_text) or bool(self.feedback_transcript)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "round_number": self.round_number,
            "prompt_text": self.prompt_text,
            "user_response": self.user_response,
            "response_type": self.response_type.value if self.response_type else None,
            "generated_sample": self.generated_sample,
            "rating": self.rating,
            "feedback_text": self.feedback_text,
            "feedback_transcript": self.feedback_transcript,
            "insights_extracted": [i.to_dict() for i in self.insights_extracted],
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CalibrationRound:
        response_type = data.get("response_type")
        rating = data.get("rating")
        return cls(
            id=data.get("id") or generate_id(),
            round_number=int(data["round_number"]),
            prompt_text=data["prompt_text"],
            user_response=data.get("user_response"),
            response_type=ResponseType(response_type) if response_type else None,
            generated_sample=data.get("generated_sample"),
            rating=int(rating) if rating is not None else None,
            feedback_text=data.get("feedback_text"),
            feedback_transcript=data.get("feedback_transcript"),
            insights_extracted=[
                CalibrationInsight.from_dict(i) for i in data.get("insights_extracted") or []
            ],
            created_at=parse_timestamp(data.get("created_at")) or utc_now(),
        )


# =============================================================================
# GENERATION INPUT
# =============================================================================


@dataclass
class OutlineSection:
    type: OutlineSectionType
    title: str
    key_quotes: List[str] = field(default_factory=list)


@dataclass
class ContentOutline:
    """Suggested structure for the generated piece."""

    suggested_title: str
    sections: List[OutlineSection] = field(default_factory=list)
    estimated_word_count: int = 0


@dataclass
class FollowUpQuestion:
    id: str
    question_type: str
    question: str


@dataclass
class FollowUpResponse:
    question_id: str
    response_type: ResponseType
    content: Optional[str] = None


@dataclass
class GenerationRequest:
    """What the engine hands to the (external) text generation collaborator."""

    prompt: str
    system_prompt: str


# =============================================================================
# RESULTS
# =============================================================================


@dataclass
class AggregationResult:
    profile: VoiceDNA
    is_new_profile: bool
    calibration_score_change: int


@dataclass
class VoiceDNASummary:
    """Compact, display-oriented projection of a profile."""

    strengths: List[str]
    characteristics: List[str]
    calibration_level: CalibrationLevel
    state: ProfileState

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strengths": list(self.strengths),
            "characteristics": list(self.characteristics),
            "calibration_level": self.calibration_level.value,
            "state": self.state.value,
        }


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    # Enums
    "LengthBucket",
    "PaceVariation",
    "StorytellingStyle",
    "StructurePreference",
    "OpeningStyle",
    "ClosingStyle",
    "RuleType",
    "EnthusiasmIndicator",
    "PeakUse",
    "ResponseType",
    "ContributionKind",
    "ProfileState",
    "CalibrationLevel",
    "OutlineSectionType",
    # Constants
    "TONAL_ATTRIBUTE_NAMES",
    "CATEGORICAL_FIELDS",
    # Transcription
    "WordTimestamp",
    "TranscriptionResult",
    # Enthusiasm
    "EnthusiasmSegment",
    "PeakMoment",
    "EnthusiasmAnalysis",
    # Voice DNA
    "Rhythm",
    "Rhetoric",
    "Vocabulary",
    "EnthusiasmPattern",
    "SpokenPatterns",
    "WrittenPatterns",
    "TonalAttributes",
    "LearnedRule",
    "ReferentWeight",
    "ReferentInfluences",
    "CategoryVote",
    "VoiceDNA",
    # Extractor
    "FeatureContribution",
    # Calibration
    "CalibrationInsight",
    "CalibrationRound",
    # Generation
    "OutlineSection",
    "ContentOutline",
    "FollowUpQuestion",
    "FollowUpResponse",
    "GenerationRequest",
    # Results
    "AggregationResult",
    "VoiceDNASummary",
]

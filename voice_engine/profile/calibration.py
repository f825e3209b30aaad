"""
Calibration scoring and calibration-round lifecycle.

The score (0-100) measures how well a profile represents its user.  It is
the sum of three capped components:

- **volume**: recency-weighted count of contributing events, with
  logarithmic growth up to ``volume_saturation`` events
- **rules**: mean confidence of learned rules above the confidence
  threshold, scaled by how many such rules exist
- **recency**: share of contributing events inside the recency window

A profile can only reach the calibrated threshold after enough voice
sessions plus either a writing sample or two calibration rounds; below
that the score stops one point short of the threshold.

Round helpers are pure: each returns a new ``CalibrationRound`` and never
touches its input.
"""

import logging
import math
import statistics
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from voice_engine.config import AggregatorConfig, ValidationLimits
from voice_engine.exceptions import CalibrationRoundError, ValidationError
from voice_engine.models import (
    CalibrationInsight,
    CalibrationRound,
    LearnedRule,
    ResponseType,
    RuleType,
    VoiceDNA,
)
from voice_engine.utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# SCORE
# =============================================================================


def meets_calibrated_gate(profile: VoiceDNA, config: AggregatorConfig) -> bool:
    """Enough evidence for the profile to count as calibrated."""
    return profile.voice_sessions_analyzed >= config.min_sessions_for_calibrated and (
        profile.writing_samples_analyzed >= 1 or profile.calibration_rounds_completed >= 2
    )


def compute_calibration_score(
    profile: VoiceDNA,
    now: Optional[datetime] = None,
    config: Optional[AggregatorConfig] = None,
) -> int:
    """
    Score *profile* from scratch.

    This is the raw score.  The aggregator keeps the stored score
    non-decreasing by taking ``max(previous, computed)``; only
    ``recompute_calibration`` writes the raw value back.
    """
    config = config or AggregatorConfig()
    now = ensure_utc(now or utc_now())
    window_start = now - timedelta(days=config.recency_window_days)

    history = profile.contribution_history
    recent = sum(1 for ts in history if ts >= window_start)
    stale = len(history) - recent
    weighted = recent + stale * config.stale_contribution_weight

    volume = config.volume_points * min(
        1.0, math.log1p(weighted) / math.log1p(config.volume_saturation)
    )

    confident = [
        r.confidence for r in profile.learned_rules
        if r.confidence > config.rule_confidence_threshold
    ]
    rules = 0.0
    if confident:
        coverage = min(1.0, len(confident) / config.rules_for_full_credit)
        rules = config.rule_points * statistics.fmean(confident) * coverage

    recency = config.recency_points * (recent / len(history)) if history else 0.0

    score = int(round(volume + rules + recency))
    if score >= config.calibrated_threshold and not meets_calibrated_gate(profile, config):
        score = config.calibrated_threshold - 1
    return max(0, min(100, score))


# =============================================================================
# ROUNDS
# =============================================================================


CALIBRATION_PROMPTS: Tuple[str, ...] = (
    "Write a short opening paragraph about why your favorite aspect of "
    "[your main topic] matters to people.",
    "Imagine you're explaining a key concept from your expertise to a friend "
    "over coffee. What would you say?",
    "What's a common mistake people make in your field, and how would you "
    "advise them to avoid it?",
)


def default_calibration_prompt(round_number: int) -> str:
    """Fixed prompts for the first rounds, then the same prompts in rotation."""
    if round_number < 1:
        raise ValidationError(f"Round numbers start at 1, got {round_number}")
    if round_number <= len(CALIBRATION_PROMPTS):
        return CALIBRATION_PROMPTS[round_number - 1]
    return CALIBRATION_PROMPTS[round_number % len(CALIBRATION_PROMPTS)]


def open_round(
    rounds: Sequence[CalibrationRound], prompt_text: Optional[str] = None
) -> CalibrationRound:
    """
    Return the round the user should answer next.

    An unrated round is returned as is, so restarting is harmless.
    Otherwise a new round numbered after the latest one is created, with
    ``default_calibration_prompt()`` when *prompt_text* is missing or blank.
    """
    pending = [r for r in rounds if not r.is_rated]
    if pending:
        return min(pending, key=lambda r: r.round_number)
    next_number = max((r.round_number for r in rounds), default=0) + 1
    if prompt_text and prompt_text.strip():
        prompt = prompt_text.strip()
    else:
        prompt = default_calibration_prompt(next_number)
    return CalibrationRound(round_number=next_number, prompt_text=prompt)


def record_response(
    round_: CalibrationRound,
    response: Optional[str],
    response_type: ResponseType,
    generated_sample: Optional[str] = None,
) -> CalibrationRound:
    """
    Store the user's answer and the sample generated from it.

    Raises:
        CalibrationRoundError: If the round is already rated.
    """
    if round_.is_rated:
        raise CalibrationRoundError(
            f"Round {round_.round_number} is already rated and cannot change"
        )
    return replace(
        round_,
        user_response=response,
        response_type=response_type,
        generated_sample=generated_sample,
    )


def _validate_insights(insights: Sequence[CalibrationInsight]) -> None:
    for insight in insights:
        if not 0.0 <= insight.confidence <= 1.0:
            raise ValidationError(
                f"Insight confidence must be within [0, 1], got {insight.confidence}"
            )
        if not insight.insight.strip():
            raise ValidationError("Insight text cannot be empty")


WELL_CALIBRATED_SHARE = 0.8  # rating / rating_max


def default_insights(
    rating: int, limits: Optional[ValidationLimits] = None
) -> List[CalibrationInsight]:
    """
    Insight recorded for a round rated without feedback or insights.

    A high rating confirms the current style with the rating as confidence;
    anything lower records that the match needs refinement.
    """
    limits = limits or ValidationLimits()
    share = rating / limits.rating_max
    if share >= WELL_CALIBRATED_SHARE:
        return [CalibrationInsight(
            RuleType.STYLE_PREFERENCE, "Current voice style is well-calibrated", share
        )]
    return [CalibrationInsight(
        RuleType.TONE_ADJUSTMENT,
        f"Voice match rated {rating}/{limits.rating_max} - needs refinement",
        0.5,
    )]


def rate_round(
    round_: CalibrationRound,
    rating: int,
    insights: Sequence[CalibrationInsight] = (),
    feedback_text: Optional[str] = None,
    feedback_transcript: Optional[str] = None,
    limits: Optional[ValidationLimits] = None,
) -> CalibrationRound:
    """
    Rate a round.  After this the round is frozen.

    Without insights and without feedback the round gets
    ``default_insights()``, so every rated round teaches the profile something.

    Raises:
        CalibrationRoundError: If the round was already rated.
        ValidationError: If the rating or an insight is out of range.
    """
    limits = limits or ValidationLimits()
    if round_.is_rated:
        raise CalibrationRoundError(f"Round {round_.round_number} is already rated")
    if not limits.rating_min <= rating <= limits.rating_max:
        raise ValidationError(
            f"Rating must be between {limits.rating_min} and {limits.rating_max}, got {rating}"
        )
    _validate_insights(insights)
    has_feedback = bool((feedback_text or "").strip() or (feedback_transcript or "").strip())
    if not insights and not has_feedback:
        insights = default_insights(rating, limits)
    return replace(
        round_,
        rating=rating,
        feedback_text=feedback_text or None,
        feedback_transcript=feedback_transcript or None,
        insights_extracted=list(insights),
    )


def append_feedback(
    round_: CalibrationRound,
    feedback_text: Optional[str] = None,
    feedback_transcript: Optional[str] = None,
) -> CalibrationRound:
    """
    Attach feedback to a rated round that has none yet.

    Raises:
        CalibrationRoundError: If the round is unrated or already has
            feedback.
        ValidationError: If no feedback is given.
    """
    if not round_.is_rated:
        raise CalibrationRoundError(
            f"Round {round_.round_number} must be rated before feedback is appended"
        )
    if round_.has_feedback:
        raise CalibrationRoundError(f"Round {round_.round_number} already has feedback")
    if not feedback_text and not feedback_transcript:
        raise ValidationError("Feedback text or transcript is required")
    return replace(
        round_,
        feedback_text=feedback_text or None,
        feedback_transcript=feedback_transcript or None,
    )


def insights_to_rules(insights: Sequence[CalibrationInsight]) -> List[LearnedRule]:
    return [
        LearnedRule(type=i.type, content=i.insight, confidence=i.confidence)
        for i in insights
    ]


def average_rating(rounds: Sequence[CalibrationRound]) -> Optional[float]:
    ratings = [r.rating for r in rounds if r.rating is not None]
    return statistics.fmean(ratings) if ratings else None


__all__ = [
    "compute_calibration_score",
    "meets_calibrated_gate",
    "CALIBRATION_PROMPTS",
    "default_calibration_prompt",
    "default_insights",
    "open_round",
    "record_response",
    "rate_round",
    "append_feedback",
    "insights_to_rules",
    "average_rating",
]

"""Read-only, display-oriented projection of a Voice DNA profile."""

from typing import Dict, List, Optional

from voice_engine.config import AggregatorConfig
from voice_engine.models import (
    CalibrationLevel,
    PaceVariation,
    StorytellingStyle,
    VoiceDNA,
    VoiceDNASummary,
)
from voice_engine.profile.aggregator import derive_state

MAX_SUMMARY_ITEMS = 5

# attribute -> (threshold, label); humor registers at a lower level
TONAL_STRENGTHS: Dict[str, tuple] = {
    "warmth": (0.7, "Warm & approachable"),
    "authority": (0.7, "Confident & authoritative"),
    "humor": (0.6, "Good sense of humor"),
    "directness": (0.7, "Clear & direct"),
    "empathy": (0.7, "Empathetic"),
}

STORYTELLING_LABELS: Dict[StorytellingStyle, str] = {
    StorytellingStyle.ANECDOTE_FIRST: "Anecdotal storyteller",
    StorytellingStyle.CHRONOLOGICAL: "Chronological storyteller",
    StorytellingStyle.THESIS_FIRST: "Leads with the point",
}


def calibration_level(score: int, config: Optional[AggregatorConfig] = None) -> CalibrationLevel:
    config = config or AggregatorConfig()
    if score >= config.calibrated_threshold:
        return CalibrationLevel.HIGH
    if score >= config.medium_threshold:
        return CalibrationLevel.MEDIUM
    return CalibrationLevel.LOW


def summarize_voice_dna(
    profile: VoiceDNA, config: Optional[AggregatorConfig] = None
) -> VoiceDNASummary:
    """Strengths, characteristics and calibration level, at most five of each."""
    config = config or AggregatorConfig()
    sp = profile.spoken_patterns

    strengths: List[str] = []
    if sp.rhetoric.uses_questions:
        strengths.append("Engages with questions")
    if sp.rhetoric.uses_analogies:
        strengths.append("Uses analogies effectively")
    tones = profile.tonal_attributes.as_dict()
    for name, (threshold, label) in TONAL_STRENGTHS.items():
        if tones[name] > threshold:
            strengths.append(label)

    characteristics: List[str] = []
    story = STORYTELLING_LABELS.get(sp.rhetoric.storytelling_style)
    if story:
        characteristics.append(story)
    if sp.rhythm.pace_variation is PaceVariation.DYNAMIC:
        characteristics.append("Dynamic pacing")
    if sp.enthusiasm.topics_that_excite:
        characteristics.append(
            f"Passionate about: {', '.join(sp.enthusiasm.topics_that_excite[:2])}"
        )
    if sp.vocabulary.signature_phrases:
        characteristics.append(f'Signature phrase: "{sp.vocabulary.signature_phrases[0]}"')

    return VoiceDNASummary(
        strengths=strengths[:MAX_SUMMARY_ITEMS],
        characteristics=characteristics[:MAX_SUMMARY_ITEMS],
        calibration_level=calibration_level(profile.calibration_score, config),
        state=derive_state(profile, config),
    )


__all__ = [
    "summarize_voice_dna",
    "calibration_level",
    "TONAL_STRENGTHS",
]

"""
Voice DNA profile building.

- ``ProfileAggregator``: Merges contributions and calibration rounds.
- ``derive_state``: Profile lifecycle state from counters and score.
- ``compute_calibration_score``: Raw 0-100 calibration score.
- ``summarize_voice_dna``: Display summary of a profile.
"""

from voice_engine.profile.aggregator import ProfileAggregator, derive_state, running_average
from voice_engine.profile.calibration import (
    append_feedback,
    compute_calibration_score,
    open_round,
    rate_round,
    record_response,
)
from voice_engine.profile.summary import calibration_level, summarize_voice_dna

__all__ = [
    "ProfileAggregator",
    "derive_state",
    "running_average",
    "compute_calibration_score",
    "open_round",
    "record_response",
    "rate_round",
    "append_feedback",
    "summarize_voice_dna",
    "calibration_level",
]

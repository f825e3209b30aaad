"""
Transcript analysis for the Voice Profile Engine.

- ``EnthusiasmAnalyzer``: Energy segments and peak moments from word timestamps.
- ``FeatureExtractor``: Linguistic features of one transcript or writing sample.
- ``analyze_written_patterns``: Structure, paragraph, opening and closing style.
- ``BaselineFrequencies``: General-language n-gram rates for phrase detection.
"""

from voice_engine.analysis.enthusiasm import (
    EnthusiasmAnalyzer,
    extract_enthusiastic_topics,
    validate_timestamps,
)
from voice_engine.analysis.lexicons import BaselineFrequencies
from voice_engine.analysis.linguistic import (
    TONAL_SCORERS,
    FeatureExtractor,
    attach_enthusiasm,
)
from voice_engine.analysis.writing import WrittenAnalysis, analyze_written_patterns

__all__ = [
    "EnthusiasmAnalyzer",
    "extract_enthusiastic_topics",
    "validate_timestamps",
    "BaselineFrequencies",
    "FeatureExtractor",
    "TONAL_SCORERS",
    "attach_enthusiasm",
    "WrittenAnalysis",
    "analyze_written_patterns",
]

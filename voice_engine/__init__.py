"""
Voice Profile Engine.

Turns transcribed speech and writing samples into a per-user Voice DNA
profile, tracks how well calibrated that profile is, blends it with
referent style influences and renders generation prompts from it.

Entry points:
    - ``voice_engine.service.VoiceProfileService``: async orchestration
    - ``voice_engine.analysis``: enthusiasm and linguistic analysis
    - ``voice_engine.profile``: aggregation, calibration, summaries
    - ``voice_engine.referents``: referent catalog and blend resolution
    - ``voice_engine.composer``: generation prompt synthesis
"""

__version__ = "0.1.0"

"""
Centralized configuration loader for the Voice Profile Engine.

Loads settings from a YAML file and environment variables, providing
sensible defaults when the configuration file is absent.

Provides:
    - EnthusiasmConfig: Segmentation thresholds and energy signal weights
    - FeatureConfig: Linguistic extraction thresholds and lexicon resources
    - AggregatorConfig: Running-average cap, calibration scoring, rule handling
    - BlendConfig: Referent blend limits (user voice floor, max referents)
    - ValidationLimits: Input size limits enforced before analysis
    - Settings: Global settings loaded from YAML + env vars
    - get_settings(): Singleton accessor for Settings
    - validate_env(): Startup validation of storage environment variables
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

import yaml
from dotenv import load_dotenv

from voice_engine.exceptions import ConfigurationError

# ---------------------------------------------------------------------------
# Load .env file (no-op if file does not exist)
# ---------------------------------------------------------------------------
load_dotenv()

# ---------------------------------------------------------------------------
# Project root (parent of voice_engine/) and packaged data directory
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = Path(__file__).resolve().parent / "data"

logger = logging.getLogger(__name__)

_WEIGHT_TOLERANCE = 1e-6

C = TypeVar("C")


def _check_weights(name: str, weights: Dict[str, float], expected: Tuple[str, ...]) -> None:
    """Fail fast unless *weights* has exactly *expected* keys summing to 1."""
    if set(weights) != set(expected):
        raise ConfigurationError(
            f"{name} must define exactly {list(expected)}, got {sorted(weights)}"
        )
    if any(w < 0 for w in weights.values()):
        raise ConfigurationError(f"{name} must be non-negative: {weights}")
    total = sum(weights.values())
    if abs(total - 1.0) > _WEIGHT_TOLERANCE:
        raise ConfigurationError(f"{name} must sum to 1.0, got {total:.6f}")


# ===========================================================================
# ENTHUSIASM ANALYZER CONFIGURATION
# ===========================================================================

ENERGY_SIGNALS: Tuple[str, ...] = ("pace", "density", "emphasis", "repetition")


@dataclass
class EnthusiasmConfig:
    """
    Thresholds for segmenting a word-timestamp stream and scoring energy.

    ``signal_weights`` combine the four normalized per-segment signals into
    ``energy_score`` and must sum to exactly 1.
    """

    # Segmentation
    silence_gap_seconds: float = 1.5
    pace_delta_wps: float = 1.5  # local vs running words-per-second
    pace_window_words: int = 4
    min_segment_words: int = 4

    # Indicators
    pace_increase_ratio: float = 1.2  # segment pace / session pace
    dense_speech_ratio: float = 0.7  # voiced time / segment time

    # Peak moments
    peak_energy_floor: float = 0.3
    max_peak_moments: int = 5
    hook_position: float = 0.2  # fraction of the session
    conclusion_position: float = 0.8
    quote_min_words: int = 4
    quote_max_words: int = 20

    signal_weights: Dict[str, float] = field(default_factory=lambda: {
        "pace": 0.30,
        "density": 0.25,
        "emphasis": 0.25,
        "repetition": 0.20,
    })

    def __post_init__(self) -> None:
        _check_weights("enthusiasm.signal_weights", self.signal_weights, ENERGY_SIGNALS)
        if not 1 <= self.max_peak_moments <= 5:
            raise ConfigurationError(
                f"enthusiasm.max_peak_moments must be between 1 and 5, "
                f"got {self.max_peak_moments}"
            )
        if self.silence_gap_seconds <= 0:
            raise ConfigurationError("enthusiasm.silence_gap_seconds must be positive")
        if self.pace_window_words < 2:
            raise ConfigurationError("enthusiasm.pace_window_words must be at least 2")


# ===========================================================================
# FEATURE EXTRACTOR CONFIGURATION
# ===========================================================================

FORMALITY_SIGNALS: Tuple[str, ...] = ("contractions", "slang", "complexity", "pronouns")


@dataclass
class FeatureConfig:
    """
    Thresholds for the linguistic feature extractor.

    Sentence buckets: mean tokens per sentence below ``short_sentence_max`` is
    short, above ``long_sentence_min`` is long, anything between is medium.
    """

    short_sentence_max: float = 12.0
    long_sentence_min: float = 22.0

    surface_top_k: int = 10
    internal_top_k: int = 50

    question_rate_threshold: float = 0.1

    # Signature phrases (2-4 grams)
    signature_min_count: int = 2
    signature_ratio: float = 5.0  # observed rate / baseline rate
    max_signature_phrases: int = 5
    baseline_path: Optional[str] = None  # None -> packaged baseline

    # Written patterns
    short_paragraph_words: int = 50
    long_paragraph_words: int = 150

    formality_weights: Dict[str, float] = field(default_factory=lambda: {
        "contractions": 0.30,
        "slang": 0.20,
        "complexity": 0.30,
        "pronouns": 0.20,
    })

    def __post_init__(self) -> None:
        _check_weights("features.formality_weights", self.formality_weights, FORMALITY_SIGNALS)
        if self.short_sentence_max >= self.long_sentence_min:
            raise ConfigurationError(
                "features.short_sentence_max must be below features.long_sentence_min"
            )
        if self.surface_top_k > self.internal_top_k:
            raise ConfigurationError(
                "features.surface_top_k cannot exceed features.internal_top_k"
            )

    def resolved_baseline_path(self) -> Path:
        """Path of the general-language n-gram baseline table."""
        if self.baseline_path:
            return Path(self.baseline_path)
        return DATA_DIR / "baseline_ngrams.yaml"


# ===========================================================================
# PROFILE AGGREGATOR CONFIGURATION
# ===========================================================================


@dataclass
class AggregatorConfig:
    """
    Merge and calibration-scoring parameters.

    The calibration score is the sum of three components whose maxima
    (``volume_points``, ``rule_points``, ``recency_points``) add up to 100.
    """

    prior_weight_cap: int = 10

    # Calibration score components
    volume_points: float = 60.0
    rule_points: float = 30.0
    recency_points: float = 10.0
    volume_saturation: int = 12  # recency-weighted contributions for full volume
    rules_for_full_credit: int = 3
    rule_confidence_threshold: float = 0.6
    recency_window_days: int = 90
    stale_contribution_weight: float = 0.5

    # State thresholds
    calibrated_threshold: int = 70
    medium_threshold: int = 30
    min_sessions_for_calibrated: int = 3

    # Vocabulary
    surface_top_k: int = 10
    max_tracked_words: int = 200

    # Learned rules
    max_learned_rules: int = 20  # oldest dropped beyond this
    merge_similar_rules: bool = False
    rule_similarity_threshold: float = 0.85
    merged_confidence_boost: float = 0.2

    def __post_init__(self) -> None:
        total = self.volume_points + self.rule_points + self.recency_points
        if abs(total - 100.0) > _WEIGHT_TOLERANCE:
            raise ConfigurationError(
                f"aggregator score components must sum to 100, got {total}"
            )
        if self.prior_weight_cap < 1:
            raise ConfigurationError("aggregator.prior_weight_cap must be at least 1")
        if self.max_learned_rules < 1:
            raise ConfigurationError("aggregator.max_learned_rules must be at least 1")
        if not 0.0 <= self.stale_contribution_weight <= 1.0:
            raise ConfigurationError(
                "aggregator.stale_contribution_weight must be within [0, 1]"
            )


# ===========================================================================
# BLEND AND VALIDATION LIMITS
# ===========================================================================


@dataclass
class BlendConfig:
    """Referent blend limits.  The user's own voice never drops below 50%."""

    max_referents: int = 3
    max_referent_total: int = 50
    max_active_traits: int = 3

    def __post_init__(self) -> None:
        if not 0 <= self.max_referent_total <= 50:
            raise ConfigurationError(
                "blend.max_referent_total must be within [0, 50] to keep the "
                "user voice at or above 50%"
            )


@dataclass
class ValidationLimits:
    """Input limits checked before anything reaches the engine core."""

    transcript_min_length: int = 50
    transcript_max_length: int = 100_000
    rating_min: int = 1
    rating_max: int = 5


# ===========================================================================
# GLOBAL SETTINGS
# ===========================================================================


def _build_section(section_cls: Type[C], data: Dict[str, Any], name: str) -> C:
    """Instantiate a config dataclass from a YAML mapping, ignoring unknown keys."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"Section '{name}' must be a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(section_cls)}  # type: ignore[arg-type]
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown keys in '%s' config section: %s", name, unknown)
    return section_cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class Settings:
    """
    Global engine settings.

    Loaded from ``config/settings.yaml`` when available, falling back to
    defaults.  Environment variables override YAML values.
    """

    log_level: str = "INFO"
    log_dir: str = "logs"
    storage_backend: str = "memory"  # "memory" | "supabase"

    enthusiasm: EnthusiasmConfig = field(default_factory=EnthusiasmConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    blend: BlendConfig = field(default_factory=BlendConfig)
    limits: ValidationLimits = field(default_factory=ValidationLimits)

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "Settings":
        """
        Load settings from a YAML file.

        If the file does not exist, returns an instance with all defaults
        (environment overrides still apply).

        Raises:
            ConfigurationError: If the YAML cannot be parsed, a section is
                malformed, or an environment override has an invalid value.
        """
        path = path or PROJECT_ROOT / "config" / "settings.yaml"

        data: Dict[str, Any] = {}
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    f"Failed to parse settings YAML at {path}: {exc}"
                ) from exc

        enthusiasm_data = dict(data.get("enthusiasm") or {})
        feature_data = dict(data.get("features") or {})
        aggregator_data = dict(data.get("aggregator") or {})
        blend_data = dict(data.get("blend") or {})
        limits_data = dict(data.get("limits") or {})

        top_level: Dict[str, Any] = {
            "log_level": data.get("log_level", "INFO"),
            "log_dir": data.get("log_dir", "logs"),
            "storage_backend": data.get("storage_backend", "memory"),
        }

        # -----------------------------------------------------------------
        # Environment variable overrides
        # -----------------------------------------------------------------
        env_overrides: Dict[str, Tuple[Dict[str, Any], str, Callable[[str], Any]]] = {
            "VOICE_ENGINE_LOG_LEVEL": (top_level, "log_level", str),
            "VOICE_ENGINE_LOG_DIR": (top_level, "log_dir", str),
            "VOICE_ENGINE_STORAGE": (top_level, "storage_backend", str),
            "SILENCE_GAP_SECONDS": (enthusiasm_data, "silence_gap_seconds", float),
            "PRIOR_WEIGHT_CAP": (aggregator_data, "prior_weight_cap", int),
            "RECENCY_WINDOW_DAYS": (aggregator_data, "recency_window_days", int),
            "MAX_REFERENTS": (blend_data, "max_referents", int),
        }
        for env_key, (target, attr_name, cast_fn) in env_overrides.items():
            env_val = os.environ.get(env_key)
            if env_val is not None:
                try:
                    target[attr_name] = cast_fn(env_val)
                except (ValueError, TypeError) as exc:
                    raise ConfigurationError(
                        f"Invalid value for env var {env_key}='{env_val}': {exc}"
                    ) from exc

        if top_level["storage_backend"] not in ("memory", "supabase"):
            raise ConfigurationError(
                f"storage_backend must be 'memory' or 'supabase', "
                f"got '{top_level['storage_backend']}'"
            )

        return cls(
            log_level=str(top_level["log_level"]).upper(),
            log_dir=top_level["log_dir"],
            storage_backend=top_level["storage_backend"],
            enthusiasm=_build_section(EnthusiasmConfig, enthusiasm_data, "enthusiasm"),
            features=_build_section(FeatureConfig, feature_data, "features"),
            aggregator=_build_section(AggregatorConfig, aggregator_data, "aggregator"),
            blend=_build_section(BlendConfig, blend_data, "blend"),
            limits=_build_section(ValidationLimits, limits_data, "limits"),
        )


# ===========================================================================
# SINGLETON SETTINGS ACCESSOR
# ===========================================================================

_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global Settings singleton.

    On first call, loads from ``config/settings.yaml`` (or defaults).
    Subsequent calls return the cached instance.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.from_yaml()
    return _settings_instance


def reset_settings() -> None:
    """Reset the cached Settings singleton (tests, config reloads)."""
    global _settings_instance
    _settings_instance = None


# ===========================================================================
# ENVIRONMENT VARIABLE VALIDATION
# ===========================================================================

# Required only when the Supabase storage backend is selected
SUPABASE_ENV_VARS: List[str] = [
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
]


def validate_env(settings: Optional[Settings] = None, strict: bool = True) -> Dict[str, bool]:
    """
    Validate that the environment variables for the chosen backend are set.

    Args:
        settings: Settings to check against.  Defaults to ``get_settings()``.
        strict: If ``True``, raise when any required variable is missing.

    Returns:
        Dict mapping variable name to presence status.

    Raises:
        ConfigurationError: If ``strict=True`` and required vars are missing.
    """
    settings = settings or get_settings()
    status: Dict[str, bool] = {var: bool(os.environ.get(var)) for var in SUPABASE_ENV_VARS}

    if settings.storage_backend == "supabase":
        missing = [var for var, present in status.items() if not present]
        if strict and missing:
            raise ConfigurationError(
                f"Missing required environment variables: {missing}. "
                f"Copy .env.example to .env and fill in the values."
            )

    return status


# ===========================================================================
# PUBLIC API
# ===========================================================================

__all__ = [
    "EnthusiasmConfig",
    "FeatureConfig",
    "AggregatorConfig",
    "BlendConfig",
    "ValidationLimits",
    "Settings",
    "ENERGY_SIGNALS",
    "FORMALITY_SIGNALS",
    "get_settings",
    "reset_settings",
    "validate_env",
    "SUPABASE_ENV_VARS",
    "PROJECT_ROOT",
    "DATA_DIR",
]

"""
Referent Catalog: read-only registry of named style influences.

Profiles are loaded once from ``voice_engine/data/referents.yaml`` and
indexed by id and by slug.  The catalog has no mutation operations;
adding a referent means editing the YAML file and redeploying.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import yaml

from voice_engine.config import DATA_DIR
from voice_engine.exceptions import ConfigurationError, UnknownReferentError
from voice_engine.models import LengthBucket, TonalAttributes

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = DATA_DIR / "referents.yaml"


# =============================================================================
# MODELS
# =============================================================================


@dataclass(frozen=True)
class LinguisticPatterns:
    sentence_length: LengthBucket
    vocabulary_level: str  # "accessible", "moderate", "advanced"
    signature_phrases: Tuple[str, ...]


@dataclass(frozen=True)
class ReferentStyleProfile:
    """
    A named writing-style influence.

    ``prompt_guidance`` is free text rendered verbatim into generation
    prompts.
    """

    id: str
    name: str
    slug: str
    description: str
    key_characteristics: Tuple[str, ...]
    linguistic_patterns: LinguisticPatterns
    tonal_attributes: Tuple[Tuple[str, float], ...]
    prompt_guidance: str

    @property
    def tones(self) -> TonalAttributes:
        return TonalAttributes(**dict(self.tonal_attributes))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReferentStyleProfile":
        patterns = data.get("linguistic_patterns") or {}
        tones = TonalAttributes.from_dict(data.get("tonal_attributes") or {})
        return cls(
            id=data["id"],
            name=data["name"],
            slug=data["slug"],
            description=data.get("description", ""),
            key_characteristics=tuple(data.get("key_characteristics") or ()),
            linguistic_patterns=LinguisticPatterns(
                sentence_length=LengthBucket(patterns.get("sentence_length", "medium")),
                vocabulary_level=patterns.get("vocabulary_level", "accessible"),
                signature_phrases=tuple(patterns.get("signature_phrases") or ()),
            ),
            tonal_attributes=tuple(tones.as_dict().items()),
            prompt_guidance=data.get("prompt_guidance", ""),
        )


# =============================================================================
# CATALOG
# =============================================================================


class ReferentCatalog:
    """
    Immutable registry keyed by id and slug.

    Usage::

        catalog = get_default_catalog()
        profile = catalog.require("seth-godin")
    """

    def __init__(self, profiles: List[ReferentStyleProfile]) -> None:
        by_key: Dict[str, ReferentStyleProfile] = {}
        for profile in profiles:
            for key in (profile.id, profile.slug):
                if key in by_key and by_key[key] is not profile:
                    raise ConfigurationError(f"Duplicate referent key '{key}'")
                by_key[key] = profile
        self._profiles: Tuple[ReferentStyleProfile, ...] = tuple(profiles)
        self._by_key: Mapping[str, ReferentStyleProfile] = MappingProxyType(by_key)

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "ReferentCatalog":
        """
        Load a catalog file.

        Raises:
            ConfigurationError: If the file is missing, unparsable or an
                entry is incomplete.
        """
        path = path or DEFAULT_CATALOG_PATH
        if not path.exists():
            raise ConfigurationError(f"Referent catalog not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse referent catalog {path}: {exc}") from exc

        try:
            profiles = [ReferentStyleProfile.from_dict(e) for e in data.get("referents") or []]
        except (KeyError, ValueError) as exc:
            raise ConfigurationError(f"Invalid referent entry in {path}: {exc}") from exc

        logger.info("Loaded %d referent profiles from %s", len(profiles), path)
        return cls(profiles)

    def get(self, id_or_slug: str) -> Optional[ReferentStyleProfile]:
        return self._by_key.get(id_or_slug)

    def require(self, id_or_slug: str) -> ReferentStyleProfile:
        """Like ``get()`` but raises ``UnknownReferentError`` on a miss."""
        profile = self._by_key.get(id_or_slug)
        if profile is None:
            raise UnknownReferentError(id_or_slug)
        return profile

    def all(self) -> Tuple[ReferentStyleProfile, ...]:
        return self._profiles

    def __contains__(self, id_or_slug: object) -> bool:
        return id_or_slug in self._by_key

    def __iter__(self) -> Iterator[ReferentStyleProfile]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)


# =============================================================================
# DEFAULT CATALOG (Singleton)
# =============================================================================

_default_catalog: Optional[ReferentCatalog] = None


def get_default_catalog() -> ReferentCatalog:
    """The built-in catalog, loaded on first use."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = ReferentCatalog.from_yaml()
    return _default_catalog


__all__ = [
    "LinguisticPatterns",
    "ReferentStyleProfile",
    "ReferentCatalog",
    "get_default_catalog",
    "DEFAULT_CATALOG_PATH",
]

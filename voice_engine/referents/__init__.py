"""
Referent style influences.

- ``ReferentCatalog``: Read-only registry of built-in referent profiles.
- ``BlendResolver``: Normalizes requested referent weights into a blend.
"""

from voice_engine.referents.catalog import (
    LinguisticPatterns,
    ReferentCatalog,
    ReferentStyleProfile,
    get_default_catalog,
)
from voice_engine.referents.blend import BlendResolver, ReferentSelection, largest_remainder

__all__ = [
    "LinguisticPatterns",
    "ReferentCatalog",
    "ReferentStyleProfile",
    "get_default_catalog",
    "BlendResolver",
    "ReferentSelection",
    "largest_remainder",
]

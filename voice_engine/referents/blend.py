"""
Blend Resolver: turns requested referent weights into ``ReferentInfluences``.

The user's own voice always keeps at least half of the blend.  Requested
referent weights above the cap are scaled down proportionally and rounded
with the largest-remainder method so they add up to the cap exactly.
Resolution is pure: the same request always resolves to the same blend.
"""

import logging
import math
from dataclasses import dataclass
from fractions import Fraction
from typing import List, Optional, Sequence, Union

from voice_engine.config import BlendConfig
from voice_engine.exceptions import TooManyReferentsError, ValidationError
from voice_engine.models import ReferentInfluences, ReferentWeight
from voice_engine.referents.catalog import (
    ReferentCatalog,
    ReferentStyleProfile,
    get_default_catalog,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferentSelection:
    """A requested referent (id or slug) and its weight in percent."""

    referent: str
    weight: Union[int, float]


def largest_remainder(weights: Sequence[Fraction], target: int) -> List[int]:
    """
    Round *weights* to integers summing to *target*.

    Each weight is floored, then the leftover units go to the largest
    fractional parts.  Equal remainders favour the earlier position.
    """
    floors = [math.floor(w) for w in weights]
    leftover = target - sum(floors)
    order = sorted(range(len(weights)), key=lambda i: (-(weights[i] - floors[i]), i))
    for i in order[:leftover]:
        floors[i] += 1
    return floors


class BlendResolver:
    """
    Resolves referent selections against a catalog.

    Usage::

        resolver = BlendResolver()
        influences = resolver.resolve([ReferentSelection("seth-godin", 30)])
    """

    def __init__(
        self,
        catalog: Optional[ReferentCatalog] = None,
        config: Optional[BlendConfig] = None,
    ) -> None:
        self.catalog = catalog or get_default_catalog()
        self.config = config or BlendConfig()

    def resolve(self, selections: Sequence[ReferentSelection]) -> ReferentInfluences:
        """
        Normalize *selections* into a valid blend.

        Raises:
            TooManyReferentsError: More than ``max_referents`` selections.
            UnknownReferentError: A selection names no catalog entry.
            ValidationError: A weight is negative or a referent repeats.
        """
        cfg = self.config
        if len(selections) > cfg.max_referents:
            raise TooManyReferentsError(len(selections), cfg.max_referents)

        profiles: List[ReferentStyleProfile] = []
        seen = set()
        for selection in selections:
            if selection.weight < 0:
                raise ValidationError(
                    f"Referent weight must be non-negative, got {selection.weight} "
                    f"for '{selection.referent}'"
                )
            profile = self.catalog.require(selection.referent)
            if profile.id in seen:
                raise ValidationError(f"Referent '{profile.id}' selected more than once")
            seen.add(profile.id)
            profiles.append(profile)

        if not profiles:
            return ReferentInfluences(user_weight=100, referents=[])

        requested = [Fraction(s.weight) for s in selections]
        raw_total = sum(requested)
        if raw_total > cfg.max_referent_total:
            scale = Fraction(cfg.max_referent_total) / raw_total
            scaled = [w * scale for w in requested]
            target = cfg.max_referent_total
            logger.debug(
                "Scaling referent weights from total %s to %d", raw_total, target
            )
        else:
            scaled = requested
            target = int(round(raw_total))

        weights = largest_remainder(scaled, target)
        referents = [
            ReferentWeight(
                referent_id=profile.id,
                name=profile.name,
                weight=weight,
                active_traits=list(profile.key_characteristics[:cfg.max_active_traits]),
            )
            for profile, weight in zip(profiles, weights)
        ]
        return ReferentInfluences(user_weight=100 - sum(weights), referents=referents)


__all__ = [
    "ReferentSelection",
    "BlendResolver",
    "largest_remainder",
]

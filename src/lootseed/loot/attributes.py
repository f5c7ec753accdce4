from __future__ import annotations

import logging
from typing import Optional

from ..catalog.loader import Catalog
from ..catalog.models import RarityEntry
from ..config import AttributeTuning
from ..rng import FloatSource
from ..sampling import SamplingContext, WeightedSampler

logger = logging.getLogger(__name__)


class AttributeRoller:
    """Picks the size-class attribute of a dropped item.

    Good sizes (value > 1) become more common with luck, bad sizes (value < 1) rarer;
    the neutral size is unaffected and doubles as the fallback.
    """

    def __init__(self, catalog: Catalog[RarityEntry], tuning: Optional[AttributeTuning] = None) -> None:
        self.catalog = catalog
        self.tuning = tuning or AttributeTuning()
        self.neutral = next((a for a in catalog if a.effect_value == 1.0), catalog.entries[0])

    def context(self, luck: float) -> SamplingContext:
        t = self.tuning
        return SamplingContext(
            luck_value=luck,
            is_good=lambda e: e.is_good,
            is_bad=lambda e: e.is_bad,
            luck_good_factor=t.luck_good_factor,
            luck_bad_factor=t.luck_bad_factor,
            global_weight_scalar=1.0,
            weight_floor=t.weight_floor,
            base_weight_constant=t.base_weight_constant,
        )

    def roll(self, rng: FloatSource, luck: float = 0.0) -> RarityEntry:
        """Roll one attribute; always returns a copy so callers may decorate it."""
        sampler = WeightedSampler(self.context(luck))
        pairs = [(a, a.rarity) for a in self.catalog if a.rarity > 0]
        chosen = sampler.sample(pairs, rng, fallback=self.neutral)
        logger.debug("Rolled attribute %s (luck=%s)", chosen.id, luck)
        return chosen.model_copy()


__all__ = ["AttributeRoller"]

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..catalog.loader import Catalog
from ..catalog.models import RarityEntry
from ..config import ModifierOptions, ModifierTuning
from ..rng import FloatSource
from ..sampling import SamplingContext, WeightedSampler

logger = logging.getLogger(__name__)


class ModifierRoller:
    """Rolls 0-2 random stacking modifiers on top of any guaranteed ones.

    Steps:
      1. Copy each guaranteed modifier found by id (unknown ids are skipped).
      2. One draw decides how many random modifiers to add (1, 2 or none).
      3. The candidate pool drops rarity-0 entries, entries gated behind a capability
         the player does not own, and anything already selected.
      4. Each pick samples the remaining pool and removes the winner, so ids stay unique.

    ``mod_chance_boost`` scales the final weights, never the rarity, so it raises the
    odds of any modifier without changing the ratios between modifiers.
    """

    def __init__(self, catalog: Catalog[RarityEntry], tuning: Optional[ModifierTuning] = None) -> None:
        self.catalog = catalog
        self.tuning = tuning or ModifierTuning()

    def context(self, options: ModifierOptions) -> SamplingContext:
        t = self.tuning
        return SamplingContext(
            luck_value=options.luck,
            is_good=lambda e: e.is_good,
            is_bad=lambda e: e.is_bad,
            luck_good_factor=t.luck_good_factor,
            luck_bad_factor=t.luck_bad_factor,
            rarity_multiplier_overrides=dict(options.rarity_multipliers),
            global_weight_scalar=options.mod_chance_boost,
            weight_floor=t.weight_floor,
            base_weight_constant=t.base_weight_constant,
        )

    def target_count(self, draw: float, options: ModifierOptions) -> int:
        t = self.tuning
        luck_boost = 1 + options.luck * t.luck_chance_factor if options.luck > 0 else 1.0
        p1 = t.one_mod_chance * options.mod_chance_boost * luck_boost
        p2 = t.two_mod_chance * options.mod_chance_boost * luck_boost
        if draw < p1:
            return 1
        if draw < p1 + p2:
            return 2
        return 0

    def candidates(self, options: ModifierOptions, exclude: Sequence[str]) -> List[RarityEntry]:
        taken = set(exclude)
        pool = []
        for mod in self.catalog:
            if mod.rarity == 0:
                continue
            if mod.required_capability and mod.required_capability not in options.owned_capabilities:
                continue
            if mod.id in taken:
                continue
            pool.append(mod)
        return pool

    def roll(self, rng: FloatSource, options: Optional[ModifierOptions] = None) -> List[RarityEntry]:
        options = options or ModifierOptions()
        selected: List[RarityEntry] = []
        for mod_id in options.guaranteed_ids:
            mod = self.catalog.get(mod_id)
            if mod is None:
                logger.debug("Skipping unknown guaranteed modifier '%s'", mod_id)
                continue
            if any(s.id == mod_id for s in selected):
                continue
            selected.append(mod.model_copy())

        count = self.target_count(rng.random(), options)
        pool = self.candidates(options, [s.id for s in selected])
        sampler = WeightedSampler(self.context(options))
        picks = sampler.sample_without_replacement([(m, m.rarity) for m in pool], rng, count)
        selected.extend(m.model_copy() for m in picks)

        logger.debug("Rolled modifiers %s (target=%d)", [m.id for m in selected], count)
        return selected


@dataclass(frozen=True)
class ValueBreakdown:
    modifier_bonus_sum: float
    modifier_multiplier: float
    final_multiplier: float


def compose_value(
    attribute: RarityEntry,
    modifiers: Sequence[RarityEntry],
    global_value_bonus: float = 0.0,
    value_floor: float = 0.1,
) -> ValueBreakdown:
    """attribute * max(floor, 1 + sum(modifier values) + global bonus)."""
    bonus = sum(m.effect_value for m in modifiers) + global_value_bonus
    multiplier = max(value_floor, 1 + bonus)
    return ValueBreakdown(
        modifier_bonus_sum=bonus,
        modifier_multiplier=multiplier,
        final_multiplier=attribute.effect_value * multiplier,
    )


__all__ = ["ModifierRoller", "ValueBreakdown", "compose_value"]

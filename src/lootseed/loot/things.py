from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..catalog.models import LootTable, LootTemplate, bracket_for
from ..config import LootTuning
from ..pity import PityTracker
from ..rng import FloatSource
from ..sampling import select_weighted
from ..utils.numbers import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RolledThing:
    template: LootTemplate
    value: int

    @property
    def id(self) -> str:
        return self.template.id

    @property
    def tier(self) -> str:
        return self.template.tier


class ThingRoller:
    """Rolls the base item of a drop before attribute and modifiers are applied.

    Tier weights depend on the wave; luck plus one point per ``pity_rolls_per_luck``
    dry rolls boosts rare, epic and legendary weights. A rare-or-better roll resets
    the loot pity tracker, anything else grows it.
    """

    def __init__(self, table: LootTable, tuning: Optional[LootTuning] = None) -> None:
        self.table = table
        self.tuning = tuning or LootTuning()

    def effective_luck(self, luck: float, pity: PityTracker) -> float:
        return luck + pity.luck_bonus(self.tuning.pity_rolls_per_luck)

    def tier_weights(self, wave: int, effective_luck: float) -> Dict[str, float]:
        weights = dict(bracket_for(self.table.brackets, wave).weights)
        if effective_luck > 0:
            for tier, boost in self.tuning.luck_tier_boosts.items():
                if weights.get(tier):
                    weights[tier] *= 1 + effective_luck * boost
        return weights

    def template_weights(self, tier_weights: Dict[str, float]) -> List[Tuple[LootTemplate, float]]:
        out = []
        for template in self.table.templates:
            weight = tier_weights.get(template.tier, 0.0) * max(0.0, template.weight)
            if weight > 0:
                out.append((template, weight))
        return out

    def value_of(self, template: LootTemplate) -> int:
        base = self.table.tier_values.get(template.tier, 0.0) + template.base_value
        return round_half_up(base * template.value_multiplier)

    def roll(self, rng: FloatSource, wave: int, luck: float, pity: PityTracker) -> RolledThing:
        weights = self.tier_weights(wave, self.effective_luck(luck, pity))
        template = select_weighted(self.template_weights(weights), rng, fallback=self.table.templates[0])
        if template.tier in self.tuning.pity_reset_tiers:
            pity.reset()
        else:
            pity.increment()
        thing = RolledThing(template=template, value=self.value_of(template))
        logger.debug("Rolled thing %s (%s) worth %d at wave %d", thing.id, thing.tier, thing.value, wave)
        return thing


__all__ = ["RolledThing", "ThingRoller"]

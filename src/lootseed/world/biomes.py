from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from ..catalog.loader import Catalog
from ..catalog.models import Biome
from ..config import BiomeTuning
from ..pity import PityTracker
from ..rng import FloatSource
from ..sampling import select_weighted

logger = logging.getLogger(__name__)

HasPerk = Callable[[str], bool]


def _no_perks(_perk_id: str) -> bool:
    return False


class BiomeSelector:
    """Weighted biome pick on every round transition.

    weight = base / rarity. Rare biomes (rarity >= rare_threshold) gain
    (1 + effective_luck * boost) where the rarest tier uses the larger boost, and
    effective luck includes one point per ``pity_rounds_per_luck`` rounds without a
    rare biome. Owning the configured perk multiplies the listed biomes' weights.
    """

    def __init__(
        self,
        catalog: Catalog[Biome],
        rng: FloatSource,
        tuning: Optional[BiomeTuning] = None,
        pity: Optional[PityTracker] = None,
    ) -> None:
        self.catalog = catalog
        self.rng = rng
        self.tuning = tuning or BiomeTuning()
        self.pity = pity or PityTracker("biome")
        self.fallback = catalog.get(self.tuning.start_biome) or catalog.entries[0]

    def is_rare(self, biome: Biome) -> bool:
        return biome.rarity >= self.tuning.rare_threshold

    def effective_luck(self, player_luck: float) -> float:
        return player_luck + self.pity.luck_bonus(self.tuning.pity_rounds_per_luck)

    def weights(self, player_luck: float, has_perk: HasPerk = _no_perks) -> List[Tuple[Biome, float]]:
        t = self.tuning
        luck = self.effective_luck(player_luck)
        perk_active = has_perk(t.perk_id)
        out = []
        for biome in self.catalog:
            weight = t.base_weight_constant / biome.rarity
            if self.is_rare(biome) and luck > 0:
                boost = t.rarest_boost if biome.rarity >= t.rarest_threshold else t.rare_boost
                weight *= 1 + luck * boost
            if perk_active and biome.id in t.perk_biomes:
                weight *= t.perk_weight_factor
            out.append((biome, weight))
        return out

    def rare_probability(self, player_luck: float, has_perk: HasPerk = _no_perks) -> float:
        """Chance that the next selection lands on a rare biome, given current pity."""
        weighted = self.weights(player_luck, has_perk)
        total = sum(w for _, w in weighted)
        rare = sum(w for b, w in weighted if self.is_rare(b))
        return rare / total if total > 0 else 0.0

    def select(self, player_luck: float = 0.0, has_perk: HasPerk = _no_perks) -> Biome:
        biome = select_weighted(self.weights(player_luck, has_perk), self.rng, fallback=self.fallback)
        if self.is_rare(biome):
            self.pity.reset()
        else:
            self.pity.increment()
        logger.info("Entering biome [%s] (pity=%d)", biome.name or biome.id, self.pity.value)
        return biome


__all__ = ["BiomeSelector"]

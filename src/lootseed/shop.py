from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .catalog.loader import Catalog
from .catalog.models import ShopItem, ShopKind, bracket_for
from .rng import FloatSource
from .sampling import select_weighted

logger = logging.getLogger(__name__)

UnlockCheck = Callable[[ShopItem], bool]


def _always_unlocked(_item: ShopItem) -> bool:
    return True


@dataclass(frozen=True)
class ShopOffer:
    """An item on the shelf with its price after world effects."""

    item: ShopItem
    price: int

    @property
    def id(self) -> str:
        return self.item.id


class ShopRoller:
    """One selection engine for every shop kind; perks and augments differ only in data.

    Offers are drawn one at a time from the eligible pool. An item stays in the pool
    until it has been offered ``shop_limit`` times in this roll.
    """

    def __init__(self, kinds: Catalog[ShopKind]) -> None:
        self.kinds = kinds

    def is_eligible(
        self,
        item: ShopItem,
        round_number: int,
        owned: Mapping[str, int],
        is_unlocked: UnlockCheck = _always_unlocked,
    ) -> bool:
        if item.forge_only:
            return False
        if owned.get(item.id, 0) >= item.max_stack:
            return False
        if any(owned.get(c, 0) > 0 for c in item.conflicts):
            return False
        if not all(owned.get(r, 0) > 0 for r in item.requires):
            return False
        if item.min_round is not None and round_number < item.min_round:
            return False
        if item.max_round is not None and round_number > item.max_round:
            return False
        return is_unlocked(item)

    def tier_weight(self, kind: ShopKind, tier: str, round_number: int, luck: float) -> float:
        weights = bracket_for(kind.brackets, round_number).weights
        weight = weights.get(tier, kind.default_weight)
        if luck > 0 and tier in kind.luck_boosts:
            weight *= 1 + luck * kind.luck_boosts[tier]
        return weight

    def weighted_pool(
        self,
        kind: ShopKind,
        round_number: int,
        owned: Mapping[str, int],
        luck: float = 0.0,
        is_unlocked: UnlockCheck = _always_unlocked,
    ) -> List[Tuple[ShopItem, float]]:
        pool = []
        for item in kind.items:
            if self.is_eligible(item, round_number, owned, is_unlocked):
                pool.append((item, self.tier_weight(kind, item.tier, round_number, luck)))
        return pool

    def roll_offers(
        self,
        kind_id: str,
        round_number: int,
        count: int,
        rng: FloatSource,
        owned: Optional[Mapping[str, int]] = None,
        luck: float = 0.0,
        is_unlocked: UnlockCheck = _always_unlocked,
    ) -> List[ShopItem]:
        """Roll up to ``count`` offers. Unknown kinds and empty pools yield no offers."""
        kind = self.kinds.get(kind_id)
        if kind is None:
            logger.debug("Unknown shop kind '%s'; no offers", kind_id)
            return []
        pool = self.weighted_pool(kind, round_number, owned or {}, luck, is_unlocked)
        offered: Dict[str, int] = {}
        selected: List[ShopItem] = []
        for _ in range(max(0, count)):
            item = select_weighted(pool, rng)
            if item is None:
                break
            selected.append(item)
            offered[item.id] = offered.get(item.id, 0) + 1
            if offered[item.id] >= item.shop_limit:
                pool = [(i, w) for i, w in pool if i.id != item.id]
        logger.debug("Rolled %s shop offers for round %d: %s", kind_id, round_number, [i.id for i in selected])
        return selected


__all__ = ["ShopOffer", "ShopRoller"]

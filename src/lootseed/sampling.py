from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from .rng import FloatSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _never(_entry: Any) -> bool:
    return False


def _entry_id(entry: Any) -> Optional[str]:
    return getattr(entry, "id", None)


@dataclass(frozen=True)
class SamplingContext:
    """Luck model and weight constants for one rarity-weighted draw.

    - luck_value: current luck; adjustments only apply while it is positive.
    - is_good / is_bad: classify entries whose rarity luck should shrink / grow.
    - luck_good_factor: good rarity is divided by (1 + luck * factor).
    - luck_bad_factor: bad rarity is multiplied by (1 + luck * factor).
    - rarity_multiplier_overrides: id -> factor applied to base rarity first.
    - global_weight_scalar: multiplies every final weight (modChanceBoost).
    - weight_floor: rarity floor before inversion, keeps weights finite and positive.
    - base_weight_constant: numerator of weight = constant / rarity.
    """

    luck_value: float = 0.0
    is_good: Callable[[Any], bool] = _never
    is_bad: Callable[[Any], bool] = _never
    luck_good_factor: float = 0.1
    luck_bad_factor: float = 0.05
    rarity_multiplier_overrides: Mapping[str, float] = field(default_factory=dict)
    global_weight_scalar: float = 1.0
    weight_floor: float = 1.0
    base_weight_constant: float = 100.0


def select_weighted(
    weighted: Sequence[Tuple[T, float]],
    rng: FloatSource,
    fallback: Optional[T] = None,
) -> Optional[T]:
    """Pick one entry from (entry, weight) pairs with a single draw.

    Walks entries in declaration order subtracting weights from r = draw * total and
    returns the first entry where the remainder drops to <= 0. Non-positive weights
    are never selected. When the total weight is not positive the fallback is
    returned and no draw is consumed.
    """
    total = 0.0
    for _, w in weighted:
        if w > 0:
            total += w
    if total <= 0:
        logger.debug("Degenerate weights (total=%s); returning fallback %r", total, fallback)
        return fallback

    remainder = rng.random() * total
    last_positive: Optional[T] = None
    for entry, w in weighted:
        if w <= 0:
            continue
        last_positive = entry
        remainder -= w
        if remainder <= 0:
            return entry
    # Fallback for floating point edge: return last positive element deterministically
    return last_positive


class WeightedSampler:
    """Rarity -> weight -> choice, parameterized by a SamplingContext.

    Luck adjusts rarity first, then weight is derived from the adjusted rarity.
    Reversing the two steps gives a different probability curve.
    """

    def __init__(self, context: Optional[SamplingContext] = None) -> None:
        self.context = context or SamplingContext()

    def effective_rarity(self, entry: Any, base_rarity: float) -> float:
        ctx = self.context
        rarity = float(base_rarity)
        entry_id = _entry_id(entry)
        if entry_id is not None:
            rarity *= ctx.rarity_multiplier_overrides.get(entry_id, 1.0)
        if ctx.luck_value > 0:
            if ctx.is_good(entry):
                rarity /= 1 + ctx.luck_value * ctx.luck_good_factor
            elif ctx.is_bad(entry):
                rarity *= 1 + ctx.luck_value * ctx.luck_bad_factor
        return rarity

    def weight(self, entry: Any, base_rarity: float) -> float:
        ctx = self.context
        rarity = self.effective_rarity(entry, base_rarity)
        return (ctx.base_weight_constant / max(ctx.weight_floor, rarity)) * ctx.global_weight_scalar

    def weights(self, pairs: Sequence[Tuple[T, float]]) -> List[Tuple[T, float]]:
        return [(entry, self.weight(entry, rarity)) for entry, rarity in pairs]

    def probabilities(self, pairs: Sequence[Tuple[T, float]]) -> List[Tuple[T, float]]:
        """Selection probability of each entry for one draw; handy for tuning and tests."""
        weighted = self.weights(pairs)
        total = sum(w for _, w in weighted if w > 0)
        if total <= 0:
            return [(entry, 0.0) for entry, _ in weighted]
        return [(entry, (w / total) if w > 0 else 0.0) for entry, w in weighted]

    def sample(
        self,
        pairs: Sequence[Tuple[T, float]],
        rng: FloatSource,
        fallback: Optional[T] = None,
    ) -> Optional[T]:
        """Draw once from (entry, base_rarity) pairs. Never raises."""
        return select_weighted(self.weights(pairs), rng, fallback)

    def sample_without_replacement(
        self,
        pairs: Sequence[Tuple[T, float]],
        rng: FloatSource,
        count: int,
    ) -> List[T]:
        """Draw up to ``count`` distinct entries, recomputing weights over the shrinking pool.

        A pick removes every pair sharing its id; entries without an id are removed by identity.
        """
        pool = list(pairs)
        chosen: List[T] = []
        for _ in range(max(0, count)):
            if not pool:
                break
            picked = self.sample(pool, rng)
            if picked is None:
                break
            chosen.append(picked)
            picked_id = _entry_id(picked)
            if picked_id is None:
                pool = [(e, r) for e, r in pool if e is not picked]
            else:
                pool = [(e, r) for e, r in pool if _entry_id(e) != picked_id]
        return chosen


__all__ = ["SamplingContext", "WeightedSampler", "select_weighted"]

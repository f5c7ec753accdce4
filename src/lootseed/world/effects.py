from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Annotated, Callable, Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..utils.numbers import round_half_up

logger = logging.getLogger(__name__)

Op = Literal["set", "add", "multi", "div"]


class PriceEffect(BaseModel):
    """Adjusts every price of one shop kind (``augment`` or ``perk``)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["price"] = "price"
    target: str = Field("augment", description="Shop kind whose prices are adjusted")
    op: Op
    value: float


class ModifierEffect(BaseModel):
    """Forces or reweights one modifier; ``modifier_id=None`` reweights all of them."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["modifier"] = "modifier"
    modifier_id: Optional[str] = None
    guaranteed: bool = False
    rarity_multiplier: float = Field(1.0, gt=0)

    @model_validator(mode="after")
    def _guarantee_needs_target(self) -> "ModifierEffect":
        if self.guaranteed and self.modifier_id is None:
            raise ValueError("a universal modifier effect cannot guarantee a modifier")
        return self


class ItemEffect(BaseModel):
    """Guarantees a loot template and/or adjusts its rolled value."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["item"] = "item"
    item_id: str
    guaranteed: bool = False
    op: Optional[Op] = None
    value: float = 0.0


class ValueTagEffect(BaseModel):
    """Multiplies a named value channel such as ``cash`` or ``luck``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["value_tag"] = "value_tag"
    tag: str
    factor: float


Effect = Annotated[
    Union[PriceEffect, ModifierEffect, ItemEffect, ValueTagEffect],
    Field(discriminator="kind"),
]


class EffectBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    effects: Tuple[Effect, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_list(cls, data):
        # catalogs may write ``effect: [...]`` instead of ``effect: {effects: [...]}``
        if isinstance(data, (list, tuple)):
            return {"effects": list(data)}
        return data

    def __bool__(self) -> bool:
        return bool(self.effects)


def apply_op(current: float, op: Optional[str], value: float) -> float:
    if op == "set":
        return value
    if op == "add":
        return current + value
    if op == "multi":
        return current * value
    if op == "div" and value != 0:
        return current / value
    return current


@dataclass
class WorldEffects:
    """Aggregate of every effect currently in play (biome first, then active events)."""

    price: Dict[str, List[PriceEffect]] = field(default_factory=dict)
    universal_rarity_multiplier: float = 1.0
    guaranteed_modifiers: List[str] = field(default_factory=list)
    modifier_rarity: Dict[str, float] = field(default_factory=dict)
    guaranteed_item: Optional[str] = None
    item_adjustments: Dict[str, List[ItemEffect]] = field(default_factory=dict)
    value_tags: Dict[str, float] = field(default_factory=dict)

    def apply_price(self, target: str, cost: float) -> int:
        """Apply the price ops for ``target`` in order; result is clamped at 0."""
        adjusted = float(cost)
        for eff in self.price.get(target, []):
            adjusted = apply_op(adjusted, eff.op, eff.value)
        return max(0, round_half_up(adjusted))

    def apply_item_value(self, item_id: str, value: float) -> float:
        adjusted = float(value)
        for eff in self.item_adjustments.get(item_id, []):
            adjusted = apply_op(adjusted, eff.op, eff.value)
        return adjusted

    def value_multiplier(self, tag: str) -> float:
        return self.value_tags.get(tag, 1.0)

    def rarity_multipliers(self, modifier_ids: Iterable[str]) -> Dict[str, float]:
        """Per-modifier rarity factors, folding the universal factor into each id."""
        out: Dict[str, float] = {}
        for mod_id in modifier_ids:
            factor = self.universal_rarity_multiplier * self.modifier_rarity.get(mod_id, 1.0)
            if factor != 1.0:
                out[mod_id] = factor
        return out


def _merge_price(target: WorldEffects, eff: PriceEffect) -> None:
    target.price.setdefault(eff.target, []).append(eff)


def _merge_modifier(target: WorldEffects, eff: ModifierEffect) -> None:
    if eff.modifier_id is None:
        target.universal_rarity_multiplier *= eff.rarity_multiplier
        return
    if eff.guaranteed and eff.modifier_id not in target.guaranteed_modifiers:
        target.guaranteed_modifiers.append(eff.modifier_id)
    if eff.rarity_multiplier != 1.0:
        current = target.modifier_rarity.get(eff.modifier_id, 1.0)
        target.modifier_rarity[eff.modifier_id] = current * eff.rarity_multiplier


def _merge_item(target: WorldEffects, eff: ItemEffect) -> None:
    if eff.guaranteed:
        target.guaranteed_item = eff.item_id
    if eff.op is not None:
        target.item_adjustments.setdefault(eff.item_id, []).append(eff)


def _merge_value_tag(target: WorldEffects, eff: ValueTagEffect) -> None:
    target.value_tags[eff.tag] = target.value_tags.get(eff.tag, 1.0) * eff.factor


_MERGERS: Dict[str, Callable[[WorldEffects, Effect], None]] = {
    "price": _merge_price,
    "modifier": _merge_modifier,
    "item": _merge_item,
    "value_tag": _merge_value_tag,
}


def merge_effects(bundles: Iterable[EffectBundle]) -> WorldEffects:
    """Fold bundles, in order, into one WorldEffects."""
    merged = WorldEffects()
    for bundle in bundles:
        for eff in bundle.effects:
            _MERGERS[eff.kind](merged, eff)
    logger.debug("Merged world effects => %s", merged)
    return merged


__all__ = [
    "Effect",
    "EffectBundle",
    "ItemEffect",
    "ModifierEffect",
    "PriceEffect",
    "ValueTagEffect",
    "WorldEffects",
    "apply_op",
    "merge_effects",
]

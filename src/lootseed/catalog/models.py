from __future__ import annotations

from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..world.effects import EffectBundle


class RarityEntry(BaseModel):
    """A size-class attribute or a stacking item modifier.

    Rarity is "higher = rarer"; a rarity of 0 keeps the entry out of random
    sampling so it can only be obtained through a guarantee.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique id within its catalog")
    name: str = Field("", description="Display name")
    effect_value: float = Field(..., description="Size multiplier or additive modifier bonus")
    rarity: float = Field(..., ge=0, description="Larger is rarer, 0 means never sampled")
    required_capability: Optional[str] = Field(default=None, description="Perk/augment id gating random selection")
    description: str = ""

    @property
    def is_good(self) -> bool:
        return self.effect_value > 1.0

    @property
    def is_bad(self) -> bool:
        return self.effect_value < 1.0


class Biome(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    rarity: float = Field(..., gt=0)
    luck_boost_factor: float = Field(1.0, gt=0)
    event_rate_multiplier: float = Field(1.0, ge=0)
    event_duration_multiplier: float = Field(1.0, gt=0)
    description: str = ""
    effect: EffectBundle = Field(default_factory=EffectBundle)


class WorldEventDef(BaseModel):
    """A world event; exactly one of duration_ticks / duration_rounds is set."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    rarity: float = Field(..., gt=0)
    duration_ticks: Optional[float] = Field(default=None, gt=0)
    duration_rounds: Optional[int] = Field(default=None, gt=0)
    description: str = ""
    effect: EffectBundle = Field(default_factory=EffectBundle)

    @model_validator(mode="after")
    def _exactly_one_duration(self) -> "WorldEventDef":
        if (self.duration_ticks is None) == (self.duration_rounds is None):
            raise ValueError(f"event {self.id!r} needs exactly one of duration_ticks / duration_rounds")
        return self

    @property
    def base_chance(self) -> float:
        return 1.0 / self.rarity

    @property
    def round_scoped(self) -> bool:
        return self.duration_rounds is not None


class TierBracket(BaseModel):
    """Tier weights that apply up to and including ``max_round`` (None = open ended)."""

    model_config = ConfigDict(frozen=True)

    max_round: Optional[int] = None
    weights: Dict[str, float]

    @field_validator("weights")
    @classmethod
    def _non_negative(cls, v: Dict[str, float]) -> Dict[str, float]:
        for tier, w in v.items():
            if w < 0:
                raise ValueError(f"tier weight for {tier!r} must be non-negative, got {w}")
        return dict(v)


def bracket_for(brackets: Tuple[TierBracket, ...], round_number: int) -> TierBracket:
    """First bracket whose max_round covers ``round_number``; the last bracket otherwise."""
    for bracket in brackets:
        if bracket.max_round is None or round_number <= bracket.max_round:
            return bracket
    return brackets[-1]


class LootTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    tier: str
    weight: float = Field(1.0, ge=0)
    base_value: float = 0.0
    value_multiplier: float = 1.0


class LootTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier_values: Dict[str, float]
    brackets: Tuple[TierBracket, ...]
    templates: Tuple[LootTemplate, ...]

    @field_validator("brackets")
    @classmethod
    def _has_brackets(cls, v: Tuple[TierBracket, ...]) -> Tuple[TierBracket, ...]:
        if not v:
            raise ValueError("loot table needs at least one tier bracket")
        return v


class ShopItem(BaseModel):
    """One perk or augment offered by a shop."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    tier: str
    cost: float = Field(0, ge=0)
    max_stack: int = Field(1, ge=1)
    shop_limit: int = Field(1, ge=1)
    conflicts: Tuple[str, ...] = ()
    requires: Tuple[str, ...] = ()
    min_round: Optional[int] = None
    max_round: Optional[int] = None
    forge_only: bool = False
    description: str = ""


class ShopKind(BaseModel):
    """Data that distinguishes one shop catalog (perks, augments) from another."""

    model_config = ConfigDict(frozen=True)

    id: str
    brackets: Tuple[TierBracket, ...]
    luck_boosts: Dict[str, float] = Field(default_factory=dict)
    default_weight: float = Field(1.0, ge=0)
    items: Tuple[ShopItem, ...]

    @field_validator("brackets")
    @classmethod
    def _has_brackets(cls, v: Tuple[TierBracket, ...]) -> Tuple[TierBracket, ...]:
        if not v:
            raise ValueError("shop kind needs at least one tier bracket")
        return v


__all__ = [
    "Biome",
    "LootTable",
    "LootTemplate",
    "RarityEntry",
    "ShopItem",
    "ShopKind",
    "TierBracket",
    "WorldEventDef",
    "bracket_for",
]

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Type, TypeVar, Union

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AttributeTuning:
    luck_good_factor: float = 0.1
    luck_bad_factor: float = 0.05
    base_weight_constant: float = 100.0
    weight_floor: float = 1.0


@dataclass(frozen=True)
class ModifierTuning:
    """Modifier roll constants.

    - one_mod_chance / two_mod_chance: base probability of rolling 1 / 2 random
      modifiers (the remainder rolls none), scaled by mod_chance_boost and luck.
    - luck_chance_factor: each luck point adds this fraction to both chances.
    - value_floor: lower bound of the composed modifier multiplier.
    """

    luck_good_factor: float = 0.1
    luck_bad_factor: float = 0.05
    base_weight_constant: float = 100.0
    weight_floor: float = 0.1
    one_mod_chance: float = 0.4
    two_mod_chance: float = 0.15
    luck_chance_factor: float = 0.05
    value_floor: float = 0.1


@dataclass(frozen=True)
class BiomeTuning:
    """Biome selection constants.

    Biomes with rarity >= rare_threshold are "rare" (luck boosted, reset pity);
    rarity >= rarest_threshold gets the larger boost.
    """

    base_weight_constant: float = 100.0
    rare_threshold: float = 25.0
    rarest_threshold: float = 50.0
    rare_boost: float = 0.1
    rarest_boost: float = 0.2
    pity_rounds_per_luck: int = 5
    perk_id: str = "explorers_compass"
    perk_biomes: Tuple[str, ...] = ("volcano",)
    perk_weight_factor: float = 2.0
    start_biome: str = "plains"


@dataclass(frozen=True)
class EventTuning:
    pity_per_tick: float = 0.001
    luck_factor: float = 0.05
    perk_rate_multipliers: Mapping[str, float] = field(default_factory=lambda: {"explorers_compass": 1.2})


@dataclass(frozen=True)
class LootTuning:
    pity_rolls_per_luck: int = 4
    luck_tier_boosts: Mapping[str, float] = field(
        default_factory=lambda: {"rare": 0.15, "epic": 0.20, "legendary": 0.25}
    )
    pity_reset_tiers: FrozenSet[str] = frozenset({"rare", "epic", "legendary"})


@dataclass(frozen=True)
class EngineConfig:
    """Single source of truth for every tuning constant of the engine."""

    attributes: AttributeTuning = field(default_factory=AttributeTuning)
    modifiers: ModifierTuning = field(default_factory=ModifierTuning)
    biomes: BiomeTuning = field(default_factory=BiomeTuning)
    events: EventTuning = field(default_factory=EventTuning)
    loot: LootTuning = field(default_factory=LootTuning)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["biomes"]["perk_biomes"] = list(self.biomes.perk_biomes)
        data["events"]["perk_rate_multipliers"] = dict(self.events.perk_rate_multipliers)
        data["loot"]["luck_tier_boosts"] = dict(self.loot.luck_tier_boosts)
        data["loot"]["pity_reset_tiers"] = sorted(self.loot.pity_reset_tiers)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "EngineConfig":
        """Build a config from a (possibly partial) mapping. Missing fields fallback to defaults."""
        if data is not None and not isinstance(data, Mapping):
            raise ConfigError(f"Engine config must be a mapping, got {type(data).__name__}")
        data = dict(data or {})
        sections: Dict[str, Type[Any]] = {
            "attributes": AttributeTuning,
            "modifiers": ModifierTuning,
            "biomes": BiomeTuning,
            "events": EventTuning,
            "loot": LootTuning,
        }
        for key in data:
            if key not in sections:
                logger.warning("Ignoring unknown config section '%s'", key)
        built = {name: _section(section, data.get(name), name) for name, section in sections.items()}
        return cls(**built)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EngineConfig":
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file {path} is not valid YAML: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at top level")
        logger.info("Loaded engine config from %s", path)
        return cls.from_dict(raw)


def _section(section_type: Type[T], raw: Any, name: str) -> T:
    if raw is None:
        return section_type()
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Config section '{name}' must be a mapping, got {type(raw).__name__}")
    defaults = section_type()
    known = {f.name for f in fields(section_type)}
    kwargs: Dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            logger.warning("Ignoring unknown config key '%s.%s'", name, key)
            continue
        kwargs[key] = _coerce(f"{name}.{key}", getattr(defaults, key), value)
    try:
        return section_type(**kwargs)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config section '{name}': {e}") from e


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce(path: str, default: Any, value: Any) -> Any:
    """Check ``value`` against the kind of its default and convert YAML lists."""
    if _is_number(default):
        if not _is_number(value):
            raise ConfigError(f"Config value '{path}' must be a number, got {value!r}")
        return value
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ConfigError(f"Config value '{path}' must be a string, got {value!r}")
        return value
    if isinstance(default, (tuple, frozenset)):
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"Config value '{path}' must be a list of strings, got {value!r}")
        return frozenset(value) if isinstance(default, frozenset) else tuple(value)
    if isinstance(default, Mapping):
        if not isinstance(value, Mapping) or not all(_is_number(v) for v in value.values()):
            raise ConfigError(f"Config value '{path}' must map names to numbers, got {value!r}")
        return dict(value)
    return value


@dataclass(frozen=True)
class ModifierOptions:
    """Everything a modifier roll consumes from its collaborators."""

    mod_chance_boost: float = 1.0
    luck: float = 0.0
    guaranteed_ids: Tuple[str, ...] = ()
    rarity_multipliers: Mapping[str, float] = field(default_factory=dict)
    owned_capabilities: FrozenSet[str] = frozenset()
    global_value_bonus: float = 0.0


__all__ = [
    "AttributeTuning",
    "BiomeTuning",
    "EngineConfig",
    "EventTuning",
    "LootTuning",
    "ModifierOptions",
    "ModifierTuning",
]

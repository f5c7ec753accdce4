from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from .catalog.loader import Catalogs, default_catalogs
from .catalog.models import Biome, RarityEntry
from .config import EngineConfig, ModifierOptions
from .events import BIOME_ENTERED, EventBus
from .exceptions import SnapshotError
from .loot.attributes import AttributeRoller
from .loot.modifiers import ModifierRoller, ValueBreakdown, compose_value
from .loot.things import RolledThing, ThingRoller
from .pity import PityTracker
from .rng import RngStream, SeededPRNG, SeedLike, SeedState
from .shop import ShopOffer, ShopRoller, UnlockCheck
from .utils.numbers import round_half_up
from .world.biomes import BiomeSelector
from .world.effects import WorldEffects, merge_effects
from .world.events import ActiveEventInstance, ActiveWorldEvent, EventScheduler

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

STREAM_NAMES = ("attributes", "modifiers", "loot", "shop", "world-biome", "world-events")
PITY_DOMAINS = ("biome", "events", "loot")


@dataclass(frozen=True)
class RolledItem:
    """A complete drop: base thing, size attribute, modifiers and final value."""

    thing: RolledThing
    attribute: RarityEntry
    modifiers: Tuple[RarityEntry, ...]
    breakdown: ValueBreakdown
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.thing.id,
            "tier": self.thing.tier,
            "attribute": self.attribute.id,
            "modifiers": [m.id for m in self.modifiers],
            "multiplier": round(self.breakdown.final_multiplier, 6),
            "value": self.value,
        }


class RunSnapshot(BaseModel):
    """Everything needed to continue a run exactly where it stopped."""

    version: int = SNAPSHOT_VERSION
    original_seed: str
    seed_value: int
    default_state: int
    streams: Dict[str, int]
    pity: Dict[str, int]
    biome_id: str
    active_events: List[ActiveEventInstance] = Field(default_factory=list)
    round: int = Field(1, ge=1)
    tick: int = Field(0, ge=0)
    luck: float = 0.0
    owned: Dict[str, int] = Field(default_factory=dict)


class Run:
    """One seeded play session.

    Owns the root generator and its named streams, every pity tracker, the current
    biome, the round and tick counters and the event scheduler. Each consumer draws
    from its own stream, so e.g. extra item rolls never shift the biome sequence.
    """

    def __init__(
        self,
        seed: Optional[SeedLike] = None,
        catalogs: Optional[Catalogs] = None,
        config: Optional[EngineConfig] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.catalogs = catalogs or default_catalogs()
        self.bus = bus or EventBus.for_world()
        self.prng = SeededPRNG(seed)
        self.streams: Dict[str, RngStream] = {name: self.prng.derive_stream(name) for name in STREAM_NAMES}
        self.pity: Dict[str, PityTracker] = {domain: PityTracker(domain) for domain in PITY_DOMAINS}

        self.attributes = AttributeRoller(self.catalogs.attributes, self.config.attributes)
        self.modifiers = ModifierRoller(self.catalogs.modifiers, self.config.modifiers)
        self.things = ThingRoller(self.catalogs.loot, self.config.loot)
        self.shop = ShopRoller(self.catalogs.shop)
        self.biomes = BiomeSelector(
            self.catalogs.biomes, self.streams["world-biome"], self.config.biomes, self.pity["biome"]
        )
        self.scheduler = EventScheduler(
            self.catalogs.events, self.streams["world-events"], self.config.events, self.pity["events"], self.bus
        )

        self.round = 1
        self.tick_count = 0
        self.luck = 0.0
        self.owned: Dict[str, int] = {}
        self.biome: Biome = self.biomes.fallback
        logger.info("Run started with seed %s in biome %s", self.seed, self.biome.id)

    @property
    def seed(self) -> str:
        return self.prng.get_original_seed()

    # -- collaborator state -------------------------------------------------

    def grant(self, item_id: str, count: int = 1) -> None:
        """Record that the player owns ``count`` more of a perk or augment."""
        self.owned[item_id] = self.owned.get(item_id, 0) + count

    def has_perk(self, perk_id: str) -> bool:
        return self.owned.get(perk_id, 0) > 0

    def owned_capabilities(self) -> FrozenSet[str]:
        return frozenset(k for k, v in self.owned.items() if v > 0)

    def world_effects(self) -> WorldEffects:
        """Current biome effects followed by those of every active event."""
        bundles = [self.biome.effect] + [evt.effect for evt in self.scheduler.get_active_events()]
        return merge_effects(bundles)

    def luck_for_rolls(self) -> float:
        """Player luck scaled by the biome and any luck value tag in play."""
        return self.luck * self.biome.luck_boost_factor * self.world_effects().value_multiplier("luck")

    # -- rolls --------------------------------------------------------------

    def roll_attribute(self, luck: Optional[float] = None) -> RarityEntry:
        return self.attributes.roll(self.streams["attributes"], self.luck_for_rolls() if luck is None else luck)

    def roll_modifiers(self, options: Optional[ModifierOptions] = None) -> List[RarityEntry]:
        if options is None:
            options = ModifierOptions(luck=self.luck_for_rolls())
        return self.modifiers.roll(self.streams["modifiers"], self._with_world_effects(options))

    def _with_world_effects(self, options: ModifierOptions) -> ModifierOptions:
        effects = self.world_effects()
        guaranteed = tuple(effects.guaranteed_modifiers) + tuple(options.guaranteed_ids)
        multipliers = effects.rarity_multipliers(self.catalogs.modifiers.ids())
        for mod_id, factor in options.rarity_multipliers.items():
            multipliers[mod_id] = multipliers.get(mod_id, 1.0) * factor
        return replace(
            options,
            guaranteed_ids=guaranteed,
            rarity_multipliers=multipliers,
            owned_capabilities=frozenset(options.owned_capabilities) | self.owned_capabilities(),
        )

    def roll_item(self, options: Optional[ModifierOptions] = None) -> RolledItem:
        luck = self.luck_for_rolls()
        options = options or ModifierOptions(luck=luck)
        effects = self.world_effects()

        forced = next((t for t in self.catalogs.loot.templates if t.id == effects.guaranteed_item), None)
        if forced is not None:
            thing = RolledThing(template=forced, value=self.things.value_of(forced))
        else:
            thing = self.things.roll(self.streams["loot"], self.round, luck, self.pity["loot"])

        attribute = self.roll_attribute(options.luck)
        modifiers = self.roll_modifiers(options)
        breakdown = compose_value(
            attribute, modifiers, options.global_value_bonus, self.config.modifiers.value_floor
        )
        base = effects.apply_item_value(thing.id, thing.value)
        value = round_half_up(base * breakdown.final_multiplier * effects.value_multiplier("cash"))
        item = RolledItem(thing, attribute, tuple(modifiers), breakdown, max(0, value))
        logger.debug("Rolled item %s", item.to_dict())
        return item

    def roll_shop_offers(
        self,
        kind: str = "augment",
        count: int = 4,
        is_unlocked: Optional[UnlockCheck] = None,
    ) -> List[ShopOffer]:
        kwargs = {"is_unlocked": is_unlocked} if is_unlocked is not None else {}
        items = self.shop.roll_offers(
            kind, self.round, count, self.streams["shop"], self.owned, self.luck_for_rolls(), **kwargs
        )
        effects = self.world_effects()
        return [ShopOffer(item=item, price=effects.apply_price(kind, item.cost)) for item in items]

    # -- world progression --------------------------------------------------

    def advance_round(self) -> Biome:
        """Move to the next round: pick its biome and end round-scoped events."""
        self.round += 1
        self.biome = self.biomes.select(self.luck, self.has_perk)
        self.bus.publish(BIOME_ENTERED, {"biome": self.biome.id, "round": self.round}, round=self.round)
        self.scheduler.expire(self.tick_count, self.round)
        return self.biome

    def perk_event_rate_multiplier(self) -> float:
        mult = 1.0
        for perk_id, factor in self.config.events.perk_rate_multipliers.items():
            if self.has_perk(perk_id):
                mult *= factor
        return mult

    def tick(self) -> Optional[ActiveWorldEvent]:
        """Advance simulated time by one tick; returns the event started on it, if any."""
        self.tick_count += 1
        return self.scheduler.tick(
            self.tick_count, self.round, self.biome, self.luck, self.perk_event_rate_multiplier()
        )

    def get_active_events(self) -> List[ActiveWorldEvent]:
        return self.scheduler.get_active_events()

    # -- persistence --------------------------------------------------------

    def snapshot(self) -> RunSnapshot:
        seed = self.prng.snapshot()
        return RunSnapshot(
            original_seed=seed.original,
            seed_value=seed.seed_value,
            default_state=seed.default_state,
            streams={name: stream.state for name, stream in self.streams.items()},
            pity={domain: tracker.value for domain, tracker in self.pity.items()},
            biome_id=self.biome.id,
            active_events=self.scheduler.instances,
            round=self.round,
            tick=self.tick_count,
            luck=self.luck,
            owned=dict(self.owned),
        )

    def restore(self, snapshot: Any) -> None:
        """Load a RunSnapshot (or its dict / JSON form) into this run."""
        try:
            if isinstance(snapshot, str):
                snap = RunSnapshot.model_validate_json(snapshot)
            elif isinstance(snapshot, RunSnapshot):
                snap = snapshot
            else:
                snap = RunSnapshot.model_validate(snapshot)
        except ValidationError as e:
            raise SnapshotError(f"Malformed run snapshot: {e}") from e

        if snap.version != SNAPSHOT_VERSION:
            raise SnapshotError(f"Unsupported snapshot version {snap.version}")
        biome = self.catalogs.biomes.get(snap.biome_id)
        if biome is None:
            raise SnapshotError(f"Snapshot biome '{snap.biome_id}' is not in the catalog")
        for inst in snap.active_events:
            if inst.def_id not in self.catalogs.events:
                raise SnapshotError(f"Snapshot event '{inst.def_id}' is not in the catalog")
        unknown = set(snap.streams) - set(STREAM_NAMES)
        if unknown:
            raise SnapshotError(f"Snapshot has unknown streams: {sorted(unknown)}")

        self.prng.restore(SeedState(snap.original_seed, snap.seed_value, snap.default_state))
        for name, stream in self.streams.items():
            if name in snap.streams:
                stream.set_state(snap.streams[name])
            else:
                stream.set_state(self.prng.derive_seed(name))
        for domain, tracker in self.pity.items():
            tracker.restore(snap.pity.get(domain, 0))
        self.scheduler.restore(snap.active_events)
        self.biome = biome
        self.round = snap.round
        self.tick_count = snap.tick
        self.luck = snap.luck
        self.owned = dict(snap.owned)
        logger.info("Restored run %s at round %d tick %d", self.seed, self.round, self.tick_count)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: Any,
        catalogs: Optional[Catalogs] = None,
        config: Optional[EngineConfig] = None,
        bus: Optional[EventBus] = None,
    ) -> "Run":
        run = cls(seed=0, catalogs=catalogs, config=config, bus=bus)
        run.restore(snapshot)
        return run


__all__ = ["RolledItem", "Run", "RunSnapshot", "STREAM_NAMES"]

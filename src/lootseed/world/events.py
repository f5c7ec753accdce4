from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from ..catalog.loader import Catalog
from ..catalog.models import Biome, WorldEventDef
from ..config import EventTuning
from ..events import EVENT_ENDED, EVENT_STARTED, EventBus
from ..pity import PityTracker
from ..rng import FloatSource
from .effects import EffectBundle

logger = logging.getLogger(__name__)


class ActiveEventInstance(BaseModel):
    """Timing of one running event. Tick events set end_tick, round events set end_round."""

    model_config = ConfigDict(frozen=True)

    def_id: str
    start_tick: float
    end_tick: Optional[float] = None
    start_round: Optional[int] = None
    end_round: Optional[int] = None

    def expired(self, current_tick: float, current_round: int) -> bool:
        if self.end_tick is not None and current_tick >= self.end_tick:
            return True
        return self.end_round is not None and current_round >= self.end_round


@dataclass(frozen=True)
class ActiveWorldEvent:
    """Catalog data of an active event merged with its instance timing."""

    id: str
    name: str
    description: str
    effect: EffectBundle
    start_tick: float
    end_tick: Optional[float]
    start_round: Optional[int]
    end_round: Optional[int]

    @classmethod
    def of(cls, definition: WorldEventDef, instance: ActiveEventInstance) -> "ActiveWorldEvent":
        return cls(
            id=definition.id,
            name=definition.name or definition.id,
            description=definition.description,
            effect=definition.effect,
            start_tick=instance.start_tick,
            end_tick=instance.end_tick,
            start_round=instance.start_round,
            end_round=instance.end_round,
        )


class EventScheduler:
    """Per-tick Bernoulli trials over the world event catalog.

    At most one event is active at a time. While none is active every tick grows the
    event pity counter, and each event in declaration order gets one draw against
    (1/rarity + pity bonus) * biome rate * perk rate * (1 + luck * luck_factor).
    The first success starts that event and resets pity.
    """

    def __init__(
        self,
        catalog: Catalog[WorldEventDef],
        rng: FloatSource,
        tuning: Optional[EventTuning] = None,
        pity: Optional[PityTracker] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.catalog = catalog
        self.rng = rng
        self.tuning = tuning or EventTuning()
        self.pity = pity or PityTracker("events")
        self.bus = bus
        self._active: List[ActiveEventInstance] = []

    @property
    def instances(self) -> List[ActiveEventInstance]:
        return list(self._active)

    def restore(self, instances: List[ActiveEventInstance]) -> None:
        self._active = list(instances)

    def chance(self, event: WorldEventDef, biome: Biome, luck: float, perk_rate_multiplier: float = 1.0) -> float:
        luck_mult = 1 + luck * self.tuning.luck_factor
        pity_bonus = self.pity.chance_bonus(self.tuning.pity_per_tick)
        return (event.base_chance + pity_bonus) * biome.event_rate_multiplier * perk_rate_multiplier * luck_mult

    def expire(self, current_tick: float, current_round: int) -> List[ActiveEventInstance]:
        ended = [inst for inst in self._active if inst.expired(current_tick, current_round)]
        if not ended:
            return []
        self._active = [inst for inst in self._active if inst not in ended]
        for inst in ended:
            logger.info("World event ended: %s (tick=%s, round=%d)", inst.def_id, current_tick, current_round)
            self._publish(EVENT_ENDED, inst, current_round)
        return ended

    def tick(
        self,
        current_tick: float,
        current_round: int,
        biome: Biome,
        luck: float = 0.0,
        perk_rate_multiplier: float = 1.0,
    ) -> Optional[ActiveWorldEvent]:
        """Expire finished events, then try to start one. Returns the started event, if any."""
        self.expire(current_tick, current_round)
        if self._active:
            return None

        self.pity.increment()
        for event in self.catalog:
            if self.rng.random() < self.chance(event, biome, luck, perk_rate_multiplier):
                instance = self._activate(event, current_tick, current_round, biome)
                self.pity.reset()
                return ActiveWorldEvent.of(event, instance)
        return None

    def _activate(self, event: WorldEventDef, current_tick: float, current_round: int, biome: Biome) -> ActiveEventInstance:
        if event.round_scoped:
            instance = ActiveEventInstance(
                def_id=event.id,
                start_tick=current_tick,
                start_round=current_round,
                end_round=current_round + event.duration_rounds,
            )
        else:
            instance = ActiveEventInstance(
                def_id=event.id,
                start_tick=current_tick,
                end_tick=current_tick + event.duration_ticks * biome.event_duration_multiplier,
                start_round=current_round,
            )
        self._active.append(instance)
        logger.info("World event started: %s (tick=%s, round=%d)", event.id, current_tick, current_round)
        self._publish(EVENT_STARTED, instance, current_round)
        return instance

    def get_active_events(self) -> List[ActiveWorldEvent]:
        out = []
        for inst in self._active:
            definition = self.catalog.get(inst.def_id)
            if definition is None:
                logger.warning("Active event %s is not in the catalog; ignoring", inst.def_id)
                continue
            out.append(ActiveWorldEvent.of(definition, inst))
        return out

    def _publish(self, topic: str, instance: ActiveEventInstance, current_round: int) -> None:
        if self.bus is not None:
            self.bus.publish(topic, instance.model_dump(), round=current_round)


__all__ = ["ActiveEventInstance", "ActiveWorldEvent", "EventScheduler"]

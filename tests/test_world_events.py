import pytest

from lootseed.catalog.loader import Catalog
from lootseed.catalog.models import Biome, WorldEventDef
from lootseed.events import EVENT_ENDED, EVENT_STARTED, EventBus
from lootseed.pity import PityTracker
from lootseed.world.events import EventScheduler


class ScriptedRng:
    def __init__(self, *values):
        self.values = list(values)

    def random(self):
        assert self.values, "unexpected draw"
        return self.values.pop(0)


PLAIN = Biome(id="plains", rarity=10)


def make_scheduler(events, rng, dry_streak=0, bus=None):
    return EventScheduler(Catalog("events", events), rng, pity=PityTracker("events", dry_streak), bus=bus)


def tick_event(rarity=100, duration=10):
    return WorldEventDef(id="rush", rarity=rarity, duration_ticks=duration)


def test_pity_raises_trial_chance():
    sched = make_scheduler([tick_event()], ScriptedRng(), dry_streak=50)
    assert sched.chance(tick_event(), PLAIN, luck=0) == pytest.approx(0.06)


def test_draw_below_chance_activates():
    # the tick itself adds the 50th dry step before the trial
    sched = make_scheduler([tick_event()], ScriptedRng(0.05), dry_streak=49)
    started = sched.tick(1, 1, PLAIN)
    assert started is not None and started.id == "rush"
    assert sched.pity.value == 0


def test_draw_above_chance_does_not_activate():
    sched = make_scheduler([tick_event()], ScriptedRng(0.5), dry_streak=49)
    assert sched.tick(1, 1, PLAIN) is None
    assert sched.pity.value == 50
    assert sched.get_active_events() == []


def test_multipliers_scale_chance():
    sched = make_scheduler([tick_event()], ScriptedRng())
    fast = Biome(id="volcano", rarity=50, event_rate_multiplier=1.5)
    # 0.01 * 1.5 * 1.2 * (1 + 10 * 0.05)
    assert sched.chance(tick_event(), fast, luck=10, perk_rate_multiplier=1.2) == pytest.approx(0.027)


def test_first_success_in_declaration_order_wins():
    first = WorldEventDef(id="first", rarity=2, duration_ticks=5)
    second = WorldEventDef(id="second", rarity=2, duration_ticks=5)
    sched = make_scheduler([first, second], ScriptedRng(0.9, 0.0))
    assert sched.tick(1, 1, PLAIN).id == "second"


def test_tick_duration_uses_biome_multiplier_and_expires():
    slow = Biome(id="tundra", rarity=25, event_duration_multiplier=1.5)
    sched = make_scheduler([tick_event(rarity=1)], ScriptedRng(0.0))
    started = sched.tick(1, 1, slow)
    assert started.end_tick == pytest.approx(16)

    # while an event runs no trials are drawn
    sched.tick(15, 1, slow)
    assert [e.id for e in sched.get_active_events()] == ["rush"]

    ended = sched.expire(16, 1)
    assert [i.def_id for i in ended] == ["rush"]
    assert sched.get_active_events() == []


def test_round_scoped_event_expires_on_round():
    hour = WorldEventDef(id="hour", rarity=1, duration_rounds=1)
    sched = make_scheduler([hour], ScriptedRng(0.0))
    started = sched.tick(500, 2, PLAIN)
    assert started.end_round == 3
    assert started.end_tick is None

    assert sched.expire(10_000, 2) == []
    assert [i.def_id for i in sched.expire(10_000, 3)] == ["hour"]


def test_at_most_one_active_event():
    sched = make_scheduler([tick_event(rarity=1, duration=100)], ScriptedRng(0.0))
    sched.tick(1, 1, PLAIN)
    for t in range(2, 50):
        assert sched.tick(t, 1, PLAIN) is None
    assert len(sched.get_active_events()) == 1


def test_zero_event_rate_never_fires():
    dead = Biome(id="dead", rarity=10, event_rate_multiplier=0)
    sched = make_scheduler([tick_event(rarity=1)], ScriptedRng(*[0.0] * 20))
    for t in range(1, 21):
        assert sched.tick(t, 1, dead) is None


def test_bus_receives_start_and_end():
    bus = EventBus()
    seen = []
    bus.subscribe(EVENT_STARTED, lambda e: seen.append((e.name, e.payload["def_id"])))
    bus.subscribe(EVENT_ENDED, lambda e: seen.append((e.name, e.payload["def_id"])))
    sched = make_scheduler([tick_event(rarity=1, duration=2)], ScriptedRng(0.0), bus=bus)
    sched.tick(1, 1, PLAIN)
    sched.expire(3, 1)
    assert seen == [(EVENT_STARTED, "rush"), (EVENT_ENDED, "rush")]


def test_faulty_subscriber_does_not_break_publish():
    bus = EventBus()
    calls = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe("topic", broken)
    bus.subscribe("topic", lambda e: calls.append(e.payload))
    bus.publish("topic", {"x": 1})
    assert calls == [{"x": 1}]


def test_unsubscribe_and_type_check():
    bus = EventBus()
    calls = []

    def listener(event):
        calls.append(event)

    bus.subscribe("topic", listener)
    bus.unsubscribe("topic", listener)
    bus.publish("topic", {})
    assert calls == []
    with pytest.raises(TypeError):
        bus.subscribe("topic", "not callable")


def test_world_bus_rejects_unknown_topics():
    bus = EventBus.for_world()
    with pytest.raises(ValueError):
        bus.subscribe("world.biome.entred", lambda e: None)
    with pytest.raises(ValueError):
        bus.publish("weather.changed", {})
    assert bus.published_count("weather.changed") == 0


def test_bus_stamps_round_and_counts_publishes():
    bus = EventBus.for_world()
    seen = []
    bus.subscribe(EVENT_STARTED, seen.append)
    sched = make_scheduler([tick_event(rarity=1, duration=2)], ScriptedRng(0.0), bus=bus)
    sched.tick(1, 4, PLAIN)
    sched.expire(3, 4)
    assert [e.round for e in seen] == [4]
    assert bus.published_count(EVENT_STARTED) == 1
    assert bus.published_count(EVENT_ENDED) == 1

import pytest

from lootseed.catalog.loader import Catalog, default_catalogs
from lootseed.catalog.models import RarityEntry
from lootseed.config import ModifierOptions
from lootseed.loot.modifiers import ModifierRoller, compose_value
from lootseed.rng import RngStream


class ScriptedRng:
    def __init__(self, *values):
        self.values = list(values)

    def random(self):
        assert self.values, "unexpected draw"
        return self.values.pop(0)


def make_roller():
    return ModifierRoller(default_catalogs().modifiers)


def test_target_count_thresholds():
    roller = make_roller()
    opts = ModifierOptions()
    assert roller.target_count(0.39, opts) == 1
    assert roller.target_count(0.5, opts) == 2
    assert roller.target_count(0.6, opts) == 0


def test_luck_raises_modifier_count():
    roller = make_roller()
    assert roller.target_count(0.7, ModifierOptions()) == 0
    # 1 + 10 * 0.05 = 1.5 -> p1 = 0.6, p2 = 0.225
    assert roller.target_count(0.7, ModifierOptions(luck=10)) == 2


def test_negative_luck_does_not_shrink_chances():
    assert make_roller().target_count(0.39, ModifierOptions(luck=-10)) == 1


def test_guaranteed_first_unknown_skipped_and_deduped():
    roller = make_roller()
    opts = ModifierOptions(guaranteed_ids=("golden", "no_such_mod", "golden"))
    result = roller.roll(ScriptedRng(0.99), opts)
    assert [m.id for m in result] == ["golden"]


def test_guaranteed_bypasses_rarity_zero_and_capability():
    roller = make_roller()
    result = roller.roll(ScriptedRng(0.99), ModifierOptions(guaranteed_ids=("enchanted",)))
    assert [m.id for m in result] == ["enchanted"]


def test_never_duplicates_ids():
    roller = make_roller()
    rng = RngStream(31337)
    opts = ModifierOptions(guaranteed_ids=("glossy", "alien"), luck=5)
    for _ in range(2000):
        ids = [m.id for m in roller.roll(rng, opts)]
        assert len(ids) == len(set(ids))
        assert ids[:2] == ["glossy", "alien"]


def test_capability_gating():
    roller = make_roller()
    rng = RngStream(8)
    seen = set()
    for _ in range(2000):
        seen.update(m.id for m in roller.roll(rng))
    assert "radioactive" not in seen
    assert "ectoplasmic" not in seen
    assert "enchanted" not in seen

    gated = set()
    opts = ModifierOptions(owned_capabilities=frozenset({"hazmat_suit", "enchanted_table"}))
    for _ in range(2000):
        gated.update(m.id for m in roller.roll(rng, opts))
    assert "radioactive" in gated
    # rarity 0 stays out of random rolls even when unlocked
    assert "enchanted" not in gated


def test_exhausted_pool_stops_early():
    catalog = Catalog("modifiers", [RarityEntry(id="only", effect_value=0.5, rarity=10)])
    roller = ModifierRoller(catalog)
    # 0.5 asks for two modifiers but the guarantee already took the only one
    result = roller.roll(ScriptedRng(0.5), ModifierOptions(guaranteed_ids=("only",)))
    assert [m.id for m in result] == ["only"]


def test_scripted_single_pick():
    catalog = Catalog("modifiers", [
        RarityEntry(id="a", effect_value=0.5, rarity=10),
        RarityEntry(id="b", effect_value=0.5, rarity=10),
    ])
    roller = ModifierRoller(catalog)
    result = roller.roll(ScriptedRng(0.1, 0.75))
    assert [m.id for m in result] == ["b"]


def test_scripted_two_picks_return_copies():
    catalog = Catalog("modifiers", [
        RarityEntry(id="a", effect_value=0.5, rarity=10),
        RarityEntry(id="b", effect_value=0.5, rarity=10),
        RarityEntry(id="c", effect_value=0.5, rarity=10),
    ])
    roller = ModifierRoller(catalog)
    # 0.5 asks for two; 0.0 takes "a", then 0.99 lands on the last of "b" and "c"
    result = roller.roll(ScriptedRng(0.5, 0.0, 0.99))
    assert [m.id for m in result] == ["a", "c"]
    assert result[0] == catalog.get("a")
    assert result[0] is not catalog.get("a")


def test_rarity_override_shifts_odds():
    roller = make_roller()
    rng = RngStream(77)

    def corrupted_share(multipliers):
        opts = ModifierOptions(rarity_multipliers=multipliers)
        hits = 0
        for _ in range(5000):
            hits += any(m.id == "corrupted" for m in roller.roll(rng, opts))
        return hits

    assert corrupted_share({"corrupted": 10.0}) < corrupted_share({})


def test_compose_value():
    big = RarityEntry(id="big", effect_value=1.3, rarity=33)
    glossy = RarityEntry(id="glossy", effect_value=1.2, rarity=10)
    breakdown = compose_value(big, [glossy])
    assert breakdown.modifier_bonus_sum == pytest.approx(1.2)
    assert breakdown.modifier_multiplier == pytest.approx(2.2)
    assert breakdown.final_multiplier == pytest.approx(2.86)


def test_value_floor_with_stacked_negatives():
    normal = RarityEntry(id="normal", effect_value=1.0, rarity=10)
    cursed = RarityEntry(id="cursed", effect_value=-0.3, rarity=15)
    breakdown = compose_value(normal, [cursed] * 5)
    assert breakdown.modifier_multiplier == pytest.approx(0.1)
    assert breakdown.final_multiplier == pytest.approx(0.1)


def test_global_value_bonus_counts_toward_sum():
    normal = RarityEntry(id="normal", effect_value=1.0, rarity=10)
    assert compose_value(normal, [], global_value_bonus=0.5).final_multiplier == pytest.approx(1.5)

import pytest
from pydantic import ValidationError

from lootseed.world.effects import EffectBundle, ItemEffect, ModifierEffect, PriceEffect, merge_effects


def bundle(*effects):
    return EffectBundle.model_validate(list(effects))


def test_bundle_parses_tagged_kinds():
    b = bundle(
        {"kind": "price", "target": "perk", "op": "multi", "value": 0.5},
        {"kind": "modifier", "modifier_id": "golden", "guaranteed": True},
        {"kind": "item", "item_id": "diamond", "guaranteed": True},
        {"kind": "value_tag", "tag": "cash", "factor": 2},
    )
    assert [e.kind for e in b.effects] == ["price", "modifier", "item", "value_tag"]
    assert isinstance(b.effects[0], PriceEffect)
    assert b


def test_empty_bundle_is_falsy():
    assert not EffectBundle()


def test_unknown_kind_is_rejected():
    with pytest.raises(ValidationError):
        bundle({"kind": "weather", "value": 1})


def test_universal_modifier_cannot_guarantee():
    with pytest.raises(ValidationError):
        ModifierEffect(guaranteed=True)


def test_price_ops_apply_in_order():
    first = bundle({"kind": "price", "op": "multi", "value": 0.5})
    second = bundle({"kind": "price", "op": "add", "value": 10})
    assert merge_effects([first, second]).apply_price("augment", 100) == 60
    assert merge_effects([second, first]).apply_price("augment", 100) == 55


def test_price_is_clamped_and_rounded_half_up():
    assert merge_effects([bundle({"kind": "price", "op": "set", "value": -5})]).apply_price("augment", 10) == 0
    half = merge_effects([bundle({"kind": "price", "op": "multi", "value": 0.5})])
    assert half.apply_price("augment", 21) == 11
    # other shop kinds are untouched
    assert half.apply_price("perk", 21) == 21


def test_division_by_zero_is_ignored():
    effects = merge_effects([bundle({"kind": "price", "op": "div", "value": 0})])
    assert effects.apply_price("augment", 40) == 40


def test_modifier_overrides_merge_per_id():
    effects = merge_effects([
        bundle({"kind": "modifier", "modifier_id": "golden", "rarity_multiplier": 0.5}),
        bundle(
            {"kind": "modifier", "modifier_id": "golden", "rarity_multiplier": 0.5, "guaranteed": True},
            {"kind": "modifier", "rarity_multiplier": 2.0},
        ),
    ])
    assert effects.guaranteed_modifiers == ["golden"]
    assert effects.rarity_multipliers(["golden", "alien"]) == pytest.approx({"golden": 0.5, "alien": 2.0})


def test_last_guaranteed_item_wins():
    effects = merge_effects([
        bundle({"kind": "item", "item_id": "stone", "guaranteed": True}),
        bundle({"kind": "item", "item_id": "diamond", "guaranteed": True}),
    ])
    assert effects.guaranteed_item == "diamond"


def test_item_value_adjustment():
    effects = merge_effects([bundle({"kind": "item", "item_id": "stone", "op": "multi", "value": 3})])
    assert effects.apply_item_value("stone", 6) == pytest.approx(18)
    assert effects.apply_item_value("diamond", 6) == pytest.approx(6)


def test_value_tags_multiply():
    effects = merge_effects([
        bundle({"kind": "value_tag", "tag": "cash", "factor": 2.0}),
        bundle({"kind": "value_tag", "tag": "cash", "factor": 1.25}),
    ])
    assert effects.value_multiplier("cash") == pytest.approx(2.5)
    assert effects.value_multiplier("luck") == 1.0


def test_item_effect_without_op_only_guarantees():
    eff = ItemEffect(item_id="stone", guaranteed=True)
    effects = merge_effects([EffectBundle(effects=(eff,))])
    assert effects.item_adjustments == {}

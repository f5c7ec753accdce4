import logging

import pytest
import yaml

from lootseed.config import EngineConfig
from lootseed.exceptions import ConfigError


def test_defaults():
    cfg = EngineConfig()
    assert cfg.attributes.weight_floor == 1.0
    assert cfg.modifiers.weight_floor == 0.1
    assert cfg.modifiers.one_mod_chance == 0.4
    assert cfg.modifiers.two_mod_chance == 0.15
    assert cfg.biomes.pity_rounds_per_luck == 5
    assert cfg.events.pity_per_tick == 0.001
    assert cfg.loot.pity_rolls_per_luck == 4


def test_partial_dict_keeps_defaults():
    cfg = EngineConfig.from_dict({"biomes": {"rare_threshold": 30, "perk_biomes": ["volcano", "desert"]}})
    assert cfg.biomes.rare_threshold == 30
    assert cfg.biomes.perk_biomes == ("volcano", "desert")
    assert cfg.biomes.rarest_threshold == 50
    assert cfg.modifiers == EngineConfig().modifiers


def test_unknown_keys_are_ignored_with_warning(caplog):
    with caplog.at_level(logging.WARNING):
        cfg = EngineConfig.from_dict({"weather": {}, "events": {"nonsense": 1}})
    assert cfg == EngineConfig()
    assert "weather" in caplog.text
    assert "events.nonsense" in caplog.text


def test_yaml_round_trip(tmp_path):
    cfg = EngineConfig.from_dict({"loot": {"pity_reset_tiers": ["epic", "legendary"]}})
    path = tmp_path / "tuning.yaml"
    path.write_text(yaml.safe_dump(cfg.to_dict()), encoding="utf-8")
    loaded = EngineConfig.from_yaml(path)
    assert loaded == cfg
    assert loaded.loot.pity_reset_tiers == frozenset({"epic", "legendary"})


def test_missing_yaml_raises(tmp_path):
    with pytest.raises(ConfigError):
        EngineConfig.from_yaml(tmp_path / "absent.yaml")


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("modifiers: [oops\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        EngineConfig.from_yaml(path)


def test_non_mapping_yaml_raises(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        EngineConfig.from_yaml(path)


def test_non_mapping_section_raises():
    with pytest.raises(ConfigError, match="biomes"):
        EngineConfig.from_dict({"biomes": 5})


def test_non_numeric_value_raises_at_load():
    with pytest.raises(ConfigError, match="biomes.rare_boost"):
        EngineConfig.from_dict({"biomes": {"rare_boost": "x"}})
    with pytest.raises(ConfigError, match="modifiers.one_mod_chance"):
        EngineConfig.from_dict({"modifiers": {"one_mod_chance": True}})


def test_malformed_collections_raise():
    with pytest.raises(ConfigError, match="loot.luck_tier_boosts"):
        EngineConfig.from_dict({"loot": {"luck_tier_boosts": {"rare": "lots"}}})
    with pytest.raises(ConfigError, match="biomes.perk_biomes"):
        EngineConfig.from_dict({"biomes": {"perk_biomes": "volcano"}})
    with pytest.raises(ConfigError, match="biomes.start_biome"):
        EngineConfig.from_dict({"biomes": {"start_biome": 3}})


def test_empty_section_keeps_defaults():
    assert EngineConfig.from_dict({"events": None, "loot": {}}) == EngineConfig()


def test_non_mapping_config_raises():
    with pytest.raises(ConfigError):
        EngineConfig.from_dict(["modifiers"])

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.resources import files as resource_files
from pathlib import Path
from typing import Any, Dict, Generic, Iterator, Optional, Sequence, Tuple, Type, TypeVar, Union

import yaml
from pydantic import BaseModel, ValidationError

from ..exceptions import CatalogError
from .models import Biome, LootTable, RarityEntry, ShopKind, WorldEventDef

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_RESOURCE_PKG = "lootseed.catalog.data"


class Catalog(Generic[M]):
    """Immutable, declaration-ordered collection of catalog records keyed by id."""

    def __init__(self, name: str, entries: Sequence[M]) -> None:
        if not entries:
            raise CatalogError(f"Catalog '{name}' is empty")
        by_id: Dict[str, M] = {}
        for entry in entries:
            entry_id = getattr(entry, "id")
            if entry_id in by_id:
                raise CatalogError(f"Catalog '{name}' has duplicate id '{entry_id}'")
            by_id[entry_id] = entry
        self.name = name
        self._entries: Tuple[M, ...] = tuple(entries)
        self._by_id = by_id

    def get(self, entry_id: str) -> Optional[M]:
        """Return the entry for ``entry_id`` or None when unknown."""
        return self._by_id.get(entry_id)

    @property
    def entries(self) -> Tuple[M, ...]:
        return self._entries

    def ids(self) -> Tuple[str, ...]:
        return tuple(self._by_id.keys())

    def __iter__(self) -> Iterator[M]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._by_id

    def __repr__(self) -> str:
        return f"Catalog({self.name!r}, {len(self)} entries)"


@dataclass(frozen=True)
class Catalogs:
    attributes: Catalog[RarityEntry]
    modifiers: Catalog[RarityEntry]
    biomes: Catalog[Biome]
    events: Catalog[WorldEventDef]
    loot: LootTable
    shop: Catalog[ShopKind]


def _read_yaml(name: str, directory: Optional[Path]) -> Any:
    if directory is None:
        text = resource_files(_RESOURCE_PKG).joinpath(name).read_text(encoding="utf-8")
        logger.debug("Loaded embedded catalog resource %s", name)
    else:
        path = Path(directory) / name
        if not path.exists():
            raise CatalogError(f"Catalog file not found: {path}")
        text = path.read_text(encoding="utf-8")
        logger.debug("Loaded catalog from path: %s", path)
    try:
        return yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise CatalogError(f"Catalog file {name} is not valid YAML: {e}") from e


def _build(model: Type[M], raw: Any, where: str) -> M:
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise CatalogError(f"Invalid record in {where}: {e}") from e


def _load_list(name: str, key: str, model: Type[M], directory: Optional[Path]) -> Catalog[M]:
    data = _read_yaml(f"{name}.yaml", directory)
    raw_entries = data.get(key) if isinstance(data, dict) else None
    if not isinstance(raw_entries, list):
        raise CatalogError(f"Catalog '{name}' must define a '{key}' list")
    entries = [_build(model, raw, f"{name}.yaml") for raw in raw_entries]
    return Catalog(name, entries)


def load_catalogs(directory: Union[str, Path, None] = None) -> Catalogs:
    """Load and validate every catalog once, failing fast on misconfiguration.

    If directory is None, the embedded resources under lootseed/catalog/data are used.
    """
    root = Path(directory) if directory is not None else None
    attributes = _load_list("attributes", "attributes", RarityEntry, root)
    modifiers = _load_list("modifiers", "modifiers", RarityEntry, root)
    biomes = _load_list("biomes", "biomes", Biome, root)
    events = _load_list("events", "events", WorldEventDef, root)
    loot = _build(LootTable, _read_yaml("loot.yaml", root), "loot.yaml")
    if not loot.templates:
        raise CatalogError("Catalog 'loot' has no templates")
    shop = _load_list("shop", "kinds", ShopKind, root)

    neutral = [a for a in attributes if a.effect_value == 1.0]
    if not neutral:
        raise CatalogError("Attribute catalog needs a neutral (effect_value 1.0) entry as fallback")

    logger.info(
        "Catalogs loaded: %d attributes, %d modifiers, %d biomes, %d events, %d loot templates",
        len(attributes), len(modifiers), len(biomes), len(events), len(loot.templates),
    )
    return Catalogs(
        attributes=attributes,
        modifiers=modifiers,
        biomes=biomes,
        events=events,
        loot=loot,
        shop=shop,
    )


_DEFAULT: Optional[Catalogs] = None


def default_catalogs() -> Catalogs:
    """Embedded catalogs, loaded on first use and shared process-wide (they are immutable)."""
    global _DEFAULT
    if _DEFAULT is None:
        _DEFAULT = load_catalogs()
    return _DEFAULT


__all__ = ["Catalog", "Catalogs", "default_catalogs", "load_catalogs"]

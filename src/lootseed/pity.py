from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class PityTracker:
    """Dry-spell counter for one domain (biome rarity tier, event occurrence, loot tier).

    The counter only grows until a qualifying success resets it to zero. Consumers turn
    it into a bonus with luck_bonus() or chance_bonus().
    """

    __slots__ = ("domain", "_dry_streak")

    def __init__(self, domain: str, dry_streak: int = 0) -> None:
        if dry_streak < 0:
            raise ValueError("dry_streak must be non-negative")
        self.domain = domain
        self._dry_streak = int(dry_streak)

    @property
    def value(self) -> int:
        return self._dry_streak

    def increment(self) -> int:
        self._dry_streak += 1
        return self._dry_streak

    def reset(self) -> None:
        if self._dry_streak:
            logger.debug("Pity reset for %s after %d dry steps", self.domain, self._dry_streak)
        self._dry_streak = 0

    def restore(self, dry_streak: int) -> None:
        if dry_streak < 0:
            raise ValueError("dry_streak must be non-negative")
        self._dry_streak = int(dry_streak)

    def luck_bonus(self, steps_per_point: int) -> int:
        """Whole luck points earned: one per ``steps_per_point`` dry steps."""
        return self._dry_streak // max(1, steps_per_point)

    def chance_bonus(self, per_step: float) -> float:
        """Additive probability bonus growing linearly with the dry streak."""
        return self._dry_streak * per_step

    def __repr__(self) -> str:
        return f"PityTracker({self.domain!r}, dry_streak={self._dry_streak})"


__all__ = ["PityTracker"]

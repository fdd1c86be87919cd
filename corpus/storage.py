"""
Storage accounting for the session's File Search store.

Tracks a local, additive estimate of bytes stored against the capacity of
the configured tier. The estimate is never reconciled with the remote
service, which stays authoritative on hard limits.
"""

from __future__ import annotations

import logging
from enum import Enum

from django.conf import settings

logger = logging.getLogger(__name__)

GIB = 1024**3


class StorageTier(Enum):
    """File Search storage tiers, smallest first."""

    FREE = ("free", 1 * GIB, "Free (1 GB)")
    TIER_1 = ("tier1", 10 * GIB, "Tier 1 (10 GB)")
    TIER_2 = ("tier2", 100 * GIB, "Tier 2 (100 GB)")
    TIER_3 = ("tier3", 1024 * GIB, "Tier 3 (1 TB)")

    def __init__(self, identifier: str, max_bytes: int, display_name: str):
        self.identifier = identifier
        self.max_bytes = max_bytes
        self.display_name = display_name

    @property
    def max_gb(self) -> int:
        return self.max_bytes // GIB

    @classmethod
    def from_string(cls, identifier: str | None) -> StorageTier:
        """Parse a tier identifier (``free``, ``tier1`` ...); unknown values map to FREE."""
        if identifier:
            wanted = identifier.strip().lower()
            for tier in cls:
                if tier.identifier == wanted:
                    return tier
        return cls.FREE

    @classmethod
    def recommended(cls, total_bytes: int) -> StorageTier:
        """Smallest tier whose capacity covers ``total_bytes``; the largest tier otherwise."""
        for tier in cls:
            if total_bytes <= tier.max_bytes:
                return tier
        return cls.TIER_3

    def __str__(self) -> str:
        return self.display_name


def format_bytes(size: int) -> str:
    """Format a byte count with binary units, e.g. ``512.0 MB``."""
    if size <= 0:
        return "0 B"

    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(units) - 1:
        value /= 1024
        unit += 1
    return f"{value:.1f} {units[unit]}"


class StorageAccounting:
    """
    Byte-level usage estimate against a tier capacity.

    Pure bookkeeping: callers are responsible for locking when the instance
    is shared between threads.
    """

    def __init__(
        self,
        tier: StorageTier | None = None,
        *,
        alert_threshold_percent: int | None = None,
        auto_upgrade: bool | None = None,
    ):
        self.tier = tier or StorageTier.from_string(getattr(settings, "STORAGE_TIER", "free"))
        self.alert_threshold_percent = (
            alert_threshold_percent
            if alert_threshold_percent is not None
            else getattr(settings, "STORAGE_ALERT_THRESHOLD", 80)
        )
        self.auto_upgrade = (
            auto_upgrade if auto_upgrade is not None else getattr(settings, "STORAGE_AUTO_UPGRADE", True)
        )
        self.usage_bytes = 0

    @property
    def capacity_bytes(self) -> int:
        return self.tier.max_bytes

    def add(self, size: int) -> None:
        self.usage_bytes += max(0, size)
        self._check_threshold()

    def remove(self, size: int) -> None:
        self.usage_bytes = max(0, self.usage_bytes - max(0, size))

    def reset(self) -> None:
        self.usage_bytes = 0

    def would_exceed(self, extra_bytes: int) -> bool:
        return self.usage_bytes + extra_bytes > self.capacity_bytes

    def usage_percent(self) -> float:
        if self.capacity_bytes == 0:
            return 0.0
        return 100.0 * self.usage_bytes / self.capacity_bytes

    def remaining_bytes(self) -> int:
        return max(0, self.capacity_bytes - self.usage_bytes)

    def remaining_formatted(self) -> str:
        return format_bytes(self.remaining_bytes())

    def set_tier(self, tier: StorageTier | None) -> None:
        if tier is not None:
            self.tier = tier
            logger.info("Storage tier changed to: %s", tier.display_name)

    def status_line(self) -> str:
        return (
            f"{self.tier.display_name}: {format_bytes(self.usage_bytes)} / "
            f"{format_bytes(self.capacity_bytes)} ({self.usage_percent():.1f}% full)"
        )

    def _check_threshold(self) -> None:
        percent = self.usage_percent()
        if percent < self.alert_threshold_percent:
            return

        logger.warning(
            "Storage usage alert: %.1f%% of %s tier capacity", percent, self.tier.display_name
        )
        if self.auto_upgrade:
            recommended = StorageTier.recommended(self.usage_bytes)
            if recommended.max_bytes > self.tier.max_bytes:
                logger.info(
                    "Recommending tier upgrade from %s to %s",
                    self.tier.display_name,
                    recommended.display_name,
                )

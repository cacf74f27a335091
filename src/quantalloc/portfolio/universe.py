"""
Asset universe for one allocation request.

Indexes the supplied characteristics by asset class and decides which
classes are eligible to receive weight.
"""

from __future__ import annotations

import logging
from typing import Iterable

from quantalloc.models.enums import ALTERNATIVE_CLASSES, AssetClass
from quantalloc.models.types import AssetClassCharacteristics

logger = logging.getLogger(__name__)


class AssetUniverse:
    """Characteristics lookup plus the eligible set of asset classes."""

    def __init__(
        self,
        characteristics: Iterable[AssetClassCharacteristics],
        include_alternatives: bool = True,
    ):
        """
        Args:
            characteristics: One entry per assessed class. Duplicates keep the first entry.
            include_alternatives: When False, OPTIONS/FUTURES/CRYPTO are never eligible.
        """
        self._characteristics: dict[AssetClass, AssetClassCharacteristics] = {}
        self.notes: list[str] = []
        for char in characteristics:
            if char.asset_class in self._characteristics:
                logger.warning("Duplicate characteristics for %s ignored", char.asset_class.value)
                self.notes.append(
                    f"Duplicate characteristics supplied for {char.asset_class.value}; "
                    "the first entry was used."
                )
                continue
            self._characteristics[char.asset_class] = char
        self.include_alternatives = include_alternatives

    @property
    def assessed(self) -> list[AssetClass]:
        """Classes with characteristics, in canonical order."""
        return [asset for asset in AssetClass if asset in self._characteristics]

    @property
    def eligible(self) -> list[AssetClass]:
        """Classes that may hold weight, in canonical order."""
        return [asset for asset in self.assessed if self.is_eligible(asset)]

    def is_eligible(self, asset: AssetClass) -> bool:
        if asset not in self._characteristics:
            return False
        if not self.include_alternatives and asset in ALTERNATIVE_CLASSES:
            return False
        return True

    def get(self, asset: AssetClass) -> AssetClassCharacteristics | None:
        return self._characteristics.get(asset)

    def __contains__(self, asset: object) -> bool:
        return asset in self._characteristics

    def __len__(self) -> int:
        return len(self._characteristics)

    def flag_missing(self, referenced: Iterable[AssetClass]) -> list[AssetClass]:
        """Record a note for each referenced class that has no characteristics."""
        missing = sorted(
            {asset for asset in referenced if asset not in self._characteristics},
            key=lambda a: a.rank,
        )
        for asset in missing:
            logger.warning("No characteristics for %s; excluding it from allocation", asset.value)
            self.notes.append(
                f"No characteristics supplied for {asset.value}; it was excluded from the allocation."
            )
        return missing

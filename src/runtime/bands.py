"""Fixed z-index bands consumed by rendering layers.

Bands never overlap, so cross-band stacking is fixed; ordering inside a
band is recency-based and managed by the runtime coordinator.
"""

from __future__ import annotations

from enum import IntEnum

from src.constants import (
    Z_BAND_BASE,
    Z_BAND_CONTROL,
    Z_BAND_CRITICAL,
    Z_BAND_HIGHLIGHT,
    Z_BAND_MODAL,
    Z_BAND_SPAN,
    Z_BAND_TOOL,
)


class ZBand(IntEnum):
    base = Z_BAND_BASE  # assessment content, chrome
    tool = Z_BAND_TOOL  # non-modal tools: ruler, protractor, reading guide
    modal = Z_BAND_MODAL  # modal tools: calculator, dictionary
    control = Z_BAND_CONTROL  # drag/resize handles
    highlight = Z_BAND_HIGHLIGHT  # speech/annotation highlight overlays
    critical = Z_BAND_CRITICAL  # errors, system notices

    @property
    def floor(self) -> int:
        return int(self.value)

    @property
    def ceiling(self) -> int | None:
        """Highest z-index in the band, or None for the open-ended critical band."""
        if self is ZBand.critical:
            return None
        return int(self.value) + Z_BAND_SPAN - 1

    def contains(self, z_index: int) -> bool:
        if z_index < self.floor:
            return False
        ceiling = self.ceiling
        return ceiling is None or z_index <= ceiling

    @classmethod
    def parse(cls, name: str) -> ZBand:
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown z-band '{name}'") from None


def band_table() -> list[dict]:
    """Documented band table: [{"band", "floor", "ceiling"}] in stacking order."""
    return [
        {"band": band.name, "floor": band.floor, "ceiling": band.ceiling}
        for band in ZBand
    ]

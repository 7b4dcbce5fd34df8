"""Tests for the z-band table."""

from __future__ import annotations

import pytest

from src.runtime.bands import ZBand, band_table


class TestZBand:
    def test_bands_do_not_overlap(self) -> None:
        bands = list(ZBand)
        for lower, upper in zip(bands, bands[1:]):
            assert lower.ceiling is not None
            assert lower.ceiling < upper.floor

    def test_critical_is_open_ended(self) -> None:
        assert ZBand.critical.ceiling is None
        assert ZBand.critical.contains(1_000_000)

    def test_contains(self) -> None:
        assert ZBand.tool.contains(1000)
        assert ZBand.tool.contains(1999)
        assert not ZBand.tool.contains(2000)

    def test_parse(self) -> None:
        assert ZBand.parse("highlight") is ZBand.highlight
        with pytest.raises(ValueError, match="Unknown z-band"):
            ZBand.parse("popover")

    def test_table(self) -> None:
        assert band_table()[1] == {"band": "tool", "floor": 1000, "ceiling": 1999}

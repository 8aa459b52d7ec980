from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping, Tuple

from .models import DEFAULT_QUANTIZATION_UNIT

logger = logging.getLogger(__name__)

FLOOR_EPSILON = 1e-9


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class AllocationQuantizer:
    """Round period allocations to multiples of ``unit`` while keeping the total.

    Largest-remainder (Hamilton) apportionment: every period is floored to whole
    units, and the units still owed to the rounded grand total go to the periods
    with the largest fractional parts. Ties go to the earlier period key.
    """

    def __init__(self, unit: float = DEFAULT_QUANTIZATION_UNIT) -> None:
        if unit <= 0:
            raise ValueError("quantization unit must be positive")
        self._unit = float(unit)

    @property
    def unit(self) -> float:
        return self._unit

    def quantize(self, raw: Mapping[str, float]) -> Dict[str, float]:
        if not raw:
            return {}
        raw_total = sum(raw.values())
        total_units = _round_half_up(raw_total / self._unit)

        # (period, floor units, fractional part)
        entries: List[Tuple[str, int, float]] = []
        for period, hours in raw.items():
            units_raw = hours / self._unit
            floor_units = int(math.floor(units_raw + FLOOR_EPSILON))
            entries.append((period, floor_units, units_raw - floor_units))

        used_units = sum(floor_units for _, floor_units, _ in entries)
        remaining = max(0, total_units - used_units)
        logger.debug("quantize %d periods: %d units total, %d distributed by remainder", len(entries), total_units, remaining)

        by_fraction = sorted(entries, key=lambda item: (-item[2], item[0]))
        bumped = {period for period, _, _ in by_fraction[:remaining]}

        result: Dict[str, float] = {}
        for period, floor_units, _ in sorted(entries, key=lambda item: item[0]):
            units = floor_units + 1 if period in bumped else floor_units
            result[period] = units * self._unit
        return result

"""
INR band classification - maps an INR value and target range to a clinical severity band
"""

import logging
from dataclasses import dataclass
from typing import Tuple

from .schema import INRBand, TargetRange, TargetShape

logger = logging.getLogger(__name__)

DEFAULT_HIGH_TARGET_THRESHOLD = 3.5

@dataclass(frozen=True)
class BoundaryTable:
    """Lower bounds for the sub- and supra-therapeutic bands of one target shape"""
    shape: TargetShape
    # (floor, band) pairs, highest floor first; anything below the last floor is SUB_CRITICO
    sub_floors: Tuple[Tuple[float, INRBand], ...]
    # (floor, band) pairs, highest floor first; anything above max below the last floor is SOVRA_LIEVE
    supra_floors: Tuple[Tuple[float, INRBand], ...]

    def bucket_below(self, inr: float) -> INRBand:
        for floor, band in self.sub_floors:
            if inr >= floor:
                return band
        return INRBand.SUB_CRITICO

    def bucket_above(self, inr: float) -> INRBand:
        for floor, band in self.supra_floors:
            if inr >= floor:
                return band
        return INRBand.SOVRA_LIEVE

STANDARD_TABLE = BoundaryTable(
    shape=TargetShape.STANDARD,
    sub_floors=(
        (1.8, INRBand.SUB_LIEVE),
        (1.5, INRBand.SUB_MODERATO),
    ),
    supra_floors=(
        (8.0, INRBand.SOVRA_ESTREMO),
        (6.0, INRBand.SOVRA_CRITICO),
        (5.0, INRBand.SOVRA_MOLTO_ALTO),
        (4.0, INRBand.SOVRA_ALTO),
        (3.5, INRBand.SOVRA_MODERATO),
    ),
)

HIGH_TABLE = BoundaryTable(
    shape=TargetShape.HIGH,
    sub_floors=(
        (2.3, INRBand.SUB_LIEVE),
        (2.0, INRBand.SUB_MODERATO),
    ),
    supra_floors=(
        (8.5, INRBand.SOVRA_ESTREMO),
        (6.5, INRBand.SOVRA_CRITICO),
        (5.5, INRBand.SOVRA_MOLTO_ALTO),
        (4.5, INRBand.SOVRA_ALTO),
        (4.0, INRBand.SOVRA_MODERATO),
    ),
)

BOUNDARY_TABLES = {
    TargetShape.STANDARD: STANDARD_TABLE,
    TargetShape.HIGH: HIGH_TABLE,
}

def target_shape(target: TargetRange, threshold: float = DEFAULT_HIGH_TARGET_THRESHOLD) -> TargetShape:
    """High-intensity ranges (e.g. 2.5-3.5) are those whose upper bound reaches the threshold"""
    return TargetShape.HIGH if target.max >= threshold else TargetShape.STANDARD

def select_table(target: TargetRange, threshold: float = DEFAULT_HIGH_TARGET_THRESHOLD) -> BoundaryTable:
    return BOUNDARY_TABLES[target_shape(target, threshold)]

def classify(inr: float, target: TargetRange,
             threshold: float = DEFAULT_HIGH_TARGET_THRESHOLD) -> INRBand:
    """
    Classify an INR value against a target range.

    Args:
        inr: Measured INR
        target: Therapeutic range; bounds are inclusive
        threshold: Upper-bound value from which the high boundary table applies

    Returns:
        Exactly one INRBand; every real value maps to a band
    """
    if target.contains(inr):
        return INRBand.IN_RANGE

    table = select_table(target, threshold)
    if inr < target.min:
        band = table.bucket_below(inr)
    else:
        band = table.bucket_above(inr)

    logger.debug(f"INR {inr} vs {target.min}-{target.max} ({table.shape.value} table): {band.value}")
    return band

def classify_band(inr: float, target_min: float, target_max: float,
                  threshold: float = DEFAULT_HIGH_TARGET_THRESHOLD) -> INRBand:
    """Convenience wrapper taking the range as two bounds"""
    return classify(inr, TargetRange(min=target_min, max=target_max), threshold)

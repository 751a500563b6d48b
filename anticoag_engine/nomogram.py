"""
Pengo induction nomogram - weekly maintenance dose from the INR after four 5 mg doses
"""

import logging
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP

import numpy as np

from .errors import ErrorCode, invalid_input
from .schema import NomogramEstimate

logger = logging.getLogger(__name__)

# Pengo et al. 2001: day-5 INR -> weekly requirement (mg)
PENGO_TABLE = (
    (1.0, 71.0), (1.1, 57.0), (1.2, 48.0), (1.3, 43.0), (1.4, 39.0),
    (1.5, 35.0), (1.6, 33.0), (1.7, 31.0), (1.8, 29.0), (1.9, 27.0),
    (2.0, 26.0), (2.1, 24.0), (2.2, 23.0), (2.3, 22.0), (2.4, 21.0),
    (2.5, 20.0), (2.6, 19.0), (2.7, 18.0), (2.8, 17.0), (2.9, 16.5),
    (3.0, 16.0), (3.1, 15.0), (3.2, 14.0), (3.3, 13.5), (3.4, 13.0),
    (3.5, 12.0), (3.6, 11.5), (3.7, 11.0), (3.8, 10.5), (3.9, 10.0),
    (4.0, 9.0), (4.1, 8.5), (4.2, 8.0), (4.3, 7.5), (4.4, 7.0),
)

_INR_POINTS = np.array([inr for inr, _ in PENGO_TABLE])
_DOSE_POINTS = np.array([dose for _, dose in PENGO_TABLE])

class PengoNomogram:
    """Dose estimation for the induction phase"""

    min_inr = PENGO_TABLE[0][0]
    max_inr = PENGO_TABLE[-1][0]
    step_mg = 2.5

    def in_range(self, inr: float) -> bool:
        return self.min_inr <= inr <= self.max_inr

    def estimated_weekly_dose(self, inr: float) -> float:
        """Interpolated weekly requirement, rounded to 0.5 mg; clamped outside 1.0-4.4"""
        if inr <= 0:
            raise invalid_input(ErrorCode.INP_INR_OUT_OF_RANGE, "INR must be positive", inr=inr)
        raw = float(np.interp(inr, _INR_POINTS, _DOSE_POINTS))
        halves = (Decimal(str(raw)) * 2).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return float(halves / 2)

    def clinical_rounding(self, estimated_dose: float, age: int, has_bled: int, inr: float) -> float:
        """
        Round to a 2.5 mg multiple: down for older, bleeding-prone or already
        well-anticoagulated patients, up otherwise.
        """
        if age < 0 or has_bled < 0:
            raise invalid_input(
                ErrorCode.INP_PATIENT_INPUT_INVALID,
                "Age and HAS-BLED score cannot be negative",
                age=age, has_bled=has_bled
            )
        rounding = ROUND_FLOOR if self.rounds_down(age, has_bled, inr) else ROUND_CEILING
        steps = (Decimal(str(estimated_dose)) / Decimal(str(self.step_mg))).quantize(Decimal(1), rounding=rounding)
        return float(steps * Decimal(str(self.step_mg)))

    @staticmethod
    def rounds_down(age: int, has_bled: int, inr: float) -> bool:
        return age > 75 or has_bled >= 3 or inr > 2.5

    def estimate(self, inr: float, age: int, has_bled: int) -> NomogramEstimate:
        estimated = self.estimated_weekly_dose(inr)
        suggested = self.clinical_rounding(estimated, age, has_bled, inr)
        if not self.in_range(inr):
            logger.warning(f"INR {inr} outside nomogram range {self.min_inr}-{self.max_inr}, value clamped")
        return NomogramEstimate(
            inr=inr,
            estimated_weekly_dose=estimated,
            suggested_weekly_dose=suggested,
            rounded_down=self.rounds_down(age, has_bled, inr),
            in_nomogram_range=self.in_range(inr)
        )

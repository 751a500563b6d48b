"""
Time in Therapeutic Range (Rosendaal linear interpolation) and INR control statistics
"""

import logging
from collections import OrderedDict
from datetime import date
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import EngineConfig
from .errors import ErrorCode, invalid_input
from .schema import INRObservation, INRStatistics, TargetRange, TTRQuality, TTRResult

logger = logging.getLogger(__name__)

TOO_FEW_CONTROLS = "At least 2 INR controls are required to calculate TTR"

class TTRCalculator:
    """Rosendaal TTR over an INR control history"""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def quality_for(self, ttr_percentage: float) -> TTRQuality:
        tiers = self.config.ttr_quality_thresholds
        if ttr_percentage >= tiers["excellent"]:
            return TTRQuality.EXCELLENT
        if ttr_percentage >= tiers["good"]:
            return TTRQuality.GOOD
        if ttr_percentage >= tiers["acceptable"]:
            return TTRQuality.ACCEPTABLE
        if ttr_percentage >= tiers["suboptimal"]:
            return TTRQuality.SUBOPTIMAL
        return TTRQuality.POOR

    def _ordered_frame(self, observations: Sequence[INRObservation]) -> pd.DataFrame:
        """Observations sorted by date; for a repeated date the later entry wins"""
        frame = pd.DataFrame(
            [(pd.Timestamp(o.control_date), o.inr) for o in observations],
            columns=["date", "inr"]
        )
        frame = frame.sort_values("date", kind="stable")
        return frame.drop_duplicates("date", keep="last").set_index("date")

    def _daily_series(self, observations: Sequence[INRObservation]) -> pd.Series:
        frame = self._ordered_frame(observations)
        daily = frame["inr"].resample("D").asfreq().interpolate(method="time")
        daily = daily.round(self.config.ttr_interpolation_decimals)
        logger.debug(f"Interpolated {len(daily)} daily INR values from {len(frame)} controls")
        return daily

    def interpolate_daily(self, observations: Sequence[INRObservation]) -> Dict[date, float]:
        """Daily INR series between the first and last control, keyed by date"""
        if not observations:
            return {}
        daily = self._daily_series(observations)
        return {ts.date(): float(value) for ts, value in daily.items()}

    def _insufficient(self, target: TargetRange, error_code: ErrorCode, message: str, count: int = 0,
                      start: Optional[date] = None, end: Optional[date] = None) -> TTRResult:
        logger.debug(f"TTR not computable [{error_code.value}]: {message}")
        return TTRResult(
            target=target,
            quality=TTRQuality.INSUFFICIENT,
            number_of_controls=count,
            start_date=start,
            end_date=end,
            message=message,
            error_code=error_code.value
        )

    def calculate(self, observations: Sequence[INRObservation], target: TargetRange,
                  start_date: Optional[date] = None,
                  end_date: Optional[date] = None) -> TTRResult:
        """
        Calculate TTR, optionally over an explicit date window.

        Args:
            observations: INR controls in any order
            target: Therapeutic range, bounds inclusive
            start_date: Window start; the nearest earlier control anchors interpolation
            end_date: Window end

        Returns:
            TTRResult; "no data" situations give an insufficient result instead of raising
        """
        observations = list(observations)
        if len({o.control_date for o in observations}) < 2:
            return self._insufficient(
                target, ErrorCode.TTR_INSUFFICIENT_DATA, TOO_FEW_CONTROLS, len(observations)
            )

        windowed = start_date is not None or end_date is not None
        used = observations
        if windowed:
            ordered = sorted(observations, key=lambda o: o.control_date)
            start = start_date or ordered[0].control_date
            end = end_date or ordered[-1].control_date
            if start >= end:
                return self._insufficient(
                    target, ErrorCode.TTR_EMPTY_WINDOW, "Window start must precede window end", 0, start, end
                )

            inside = [o for o in ordered if start <= o.control_date <= end]
            if not inside:
                return self._insufficient(
                    target, ErrorCode.TTR_EMPTY_WINDOW, "No INR controls inside the window", 0, start, end
                )

            prior = [o for o in ordered if o.control_date < start]
            selected = prior[-1:] + inside
            if len(selected) < 2:
                return self._insufficient(
                    target, ErrorCode.TTR_INSUFFICIENT_DATA, TOO_FEW_CONTROLS, len(inside), start, end
                )
            used = inside
            daily = self._daily_series(selected)
            daily = daily[(daily.index >= pd.Timestamp(start)) & (daily.index <= pd.Timestamp(end))]
        else:
            daily = self._daily_series(observations)

        total_days = int(len(daily))
        if total_days == 0:
            return self._insufficient(
                target, ErrorCode.TTR_EMPTY_WINDOW, "No interpolated days in the window", len(used)
            )

        in_range = int(((daily >= target.min) & (daily <= target.max)).sum())
        below = int((daily < target.min).sum())
        above = int((daily > target.max).sum())
        ttr_percentage = round(in_range / total_days * 100, 1)

        return TTRResult(
            ttr_percentage=ttr_percentage,
            total_days=total_days,
            days_in_range=in_range,
            days_below_range=below,
            days_above_range=above,
            quality=self.quality_for(ttr_percentage),
            target=target,
            start_date=daily.index[0].date(),
            end_date=daily.index[-1].date(),
            number_of_controls=len(used),
            statistics=self.statistics(used, target)
        )

    def calculate_trend(self, observations: Sequence[INRObservation], target: TargetRange,
                        window_months: Optional[int] = None) -> "OrderedDict[date, float]":
        """
        Rolling TTR over N-month windows, stepping one month at a time.

        Windows with no interpolated days are left out.
        """
        months = self.config.ttr_rolling_window_months if window_months is None else window_months
        if not 1 <= months <= 12:
            raise invalid_input(
                ErrorCode.INP_WINDOW_MONTHS_INVALID,
                "Rolling window must be between 1 and 12 months",
                window_months=months
            )

        trend: "OrderedDict[date, float]" = OrderedDict()
        ordered = sorted(observations, key=lambda o: o.control_date)
        if len(ordered) < 2:
            return trend

        first = pd.Timestamp(ordered[0].control_date)
        last = pd.Timestamp(ordered[-1].control_date)

        step = 0
        window_end = first + pd.DateOffset(months=months)
        while window_end <= last:
            window_start = window_end - pd.DateOffset(months=months)
            result = self.calculate(ordered, target, window_start.date(), window_end.date())
            if result.total_days > 0:
                trend[window_end.date()] = result.ttr_percentage
            step += 1
            window_end = first + pd.DateOffset(months=months + step)

        logger.debug(f"TTR trend with {months}-month windows: {len(trend)} points")
        return trend

    def statistics(self, observations: Sequence[INRObservation],
                   target: Optional[TargetRange] = None) -> INRStatistics:
        """Descriptive statistics over the measured values, not the interpolated series"""
        values = np.array([o.inr for o in observations], dtype=float)
        if values.size == 0:
            return INRStatistics()

        stats = INRStatistics(
            count=int(values.size),
            mean=round(float(np.mean(values)), 2),
            standard_deviation=round(float(np.std(values, ddof=1)), 2) if values.size > 1 else 0.0,
            min=float(np.min(values)),
            max=float(np.max(values)),
            median=float(np.median(values))
        )
        if target is not None:
            n = values.size
            stats = stats.model_copy(update={
                "percentage_in_range": round(float(np.sum((values >= target.min) & (values <= target.max))) / n * 100, 1),
                "percentage_below_range": round(float(np.sum(values < target.min)) / n * 100, 1),
                "percentage_above_range": round(float(np.sum(values > target.max)) / n * 100, 1),
            })
        return stats

def calculate_inr_statistics(observations: Sequence[INRObservation],
                             target: Optional[TargetRange] = None) -> INRStatistics:
    return TTRCalculator().statistics(observations, target)

def observations_from_pairs(pairs: Sequence[tuple]) -> List[INRObservation]:
    """Build observations from (date, inr) pairs"""
    return [INRObservation(control_date=d, inr=inr) for d, inr in pairs]

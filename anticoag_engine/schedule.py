"""
Weekly schedule synthesis - spreads a weekly warfarin total over seven days in half-tablet steps
"""

import logging
from collections import Counter
from datetime import date
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Dict, Optional

from .config import EngineConfig
from .errors import ErrorCode, invalid_input
from .schema import Weekday, WeeklyDoseSchedule

logger = logging.getLogger(__name__)

# Half-tablet days are spread across the week rather than clustered
HALF_STEP_PRIORITY = (
    Weekday.SUNDAY,
    Weekday.WEDNESDAY,
    Weekday.FRIDAY,
    Weekday.MONDAY,
    Weekday.THURSDAY,
    Weekday.TUESDAY,
    Weekday.SATURDAY,
)

def round_to_step(value: float, step: float = 2.5) -> float:
    """Round to the nearest multiple of step, ties to the even multiple"""
    units = (Decimal(str(value)) / Decimal(str(step))).quantize(Decimal(1), rounding=ROUND_HALF_EVEN)
    return float(units * Decimal(str(step)))

def format_dose(dose_mg: float, tablet_mg: float = 5.0) -> str:
    """Tablet wording for one day's dose"""
    half = tablet_mg / 2
    if dose_mg == 0:
        return "No dose"
    if dose_mg == half:
        return f"1/2 tab ({dose_mg:g} mg)"
    if dose_mg == tablet_mg:
        return f"1 tab ({dose_mg:g} mg)"
    if dose_mg == tablet_mg + half:
        return f"1 tab + 1/2 tab ({dose_mg:g} mg)"
    if dose_mg == 2 * tablet_mg:
        return f"2 tabs ({dose_mg:g} mg)"
    return f"{dose_mg:g} mg"

def describe_pattern(daily_doses: Dict[Weekday, float], tablet_mg: float = 5.0) -> str:
    counts = Counter(daily_doses.values())
    if len(counts) == 1:
        dose = next(iter(counts))
        return f"Every day: {format_dose(dose, tablet_mg)}"
    if len(counts) == 2:
        # most frequent dose first, lower dose first on a tie
        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return ", ".join(f"{n} days: {format_dose(dose, tablet_mg)}" for dose, n in ordered)
    return "Variable schedule (see daily detail)"

def synthesize_weekly_schedule(
    weekly_dose: float,
    loading_supplement: float = 0.0,
    today: Optional[date] = None,
    config: Optional[EngineConfig] = None
) -> WeeklyDoseSchedule:
    """
    Build a seven-day schedule for a weekly total.

    Whole tablets are shared evenly across the week; the remainder goes out in half-tablet
    steps following HALF_STEP_PRIORITY. A loading supplement is a one-off addition for
    today and does not change the recurring pattern.

    Args:
        weekly_dose: Target weekly dose in mg, must be positive
        loading_supplement: One-off extra mg for today
        today: Day receiving the supplement, defaults to the current date
        config: Tablet size and step

    Returns:
        WeeklyDoseSchedule whose seven daily doses sum to the rounded weekly total
    """
    config = config or EngineConfig()

    if weekly_dose <= 0:
        raise invalid_input(
            ErrorCode.INP_DOSE_OUT_OF_RANGE,
            "Weekly dose must be positive to build a schedule",
            weekly_dose=weekly_dose
        )
    if loading_supplement < 0:
        raise invalid_input(
            ErrorCode.INP_LOADING_DOSE_NEGATIVE,
            "Loading supplement cannot be negative",
            loading_supplement=loading_supplement
        )

    step = config.dose_step_mg
    rounded_total = round_to_step(weekly_dose, step)
    total_steps = int(Decimal(str(rounded_total)) / Decimal(str(step)))
    steps_per_tablet = int(config.tablet_mg / step)

    base_steps = (total_steps // steps_per_tablet // 7) * steps_per_tablet
    day_steps = {day: base_steps for day in Weekday}
    remaining = total_steps - 7 * base_steps

    while remaining >= 7:
        for day in Weekday:
            day_steps[day] += 1
        remaining -= 7
    for day in HALF_STEP_PRIORITY[:remaining]:
        day_steps[day] += 1

    daily_doses = {day: float(Decimal(n) * Decimal(str(step))) for day, n in day_steps.items()}
    daily_descriptions = {day: format_dose(dose, config.tablet_mg) for day, dose in daily_doses.items()}
    description = describe_pattern(daily_doses, config.tablet_mg)

    loading_mg = None
    loading_day = None
    total = rounded_total
    if loading_supplement > 0:
        loading_mg = loading_supplement
        loading_day = today or date.today()
        total = float(Decimal(str(rounded_total)) + Decimal(str(loading_supplement)))
        description += f". Today: +{loading_supplement:g} mg loading dose"

    logger.debug(f"Schedule for {weekly_dose:g} mg/week -> {rounded_total:g} mg: {description}")

    return WeeklyDoseSchedule(
        total_weekly_dose=total,
        recurring_weekly_dose=rounded_total,
        daily_doses=daily_doses,
        daily_descriptions=daily_descriptions,
        description=description,
        loading_dose_mg=loading_mg,
        loading_day=loading_day
    )

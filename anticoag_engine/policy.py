"""
Guideline policy core - band rule tables, input validation and the shared evaluation flow
used by the FCSA and ACCP policies.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple

from . import bands
from .antidotes import evaluate_vitamin_k, requires_bridging
from .config import EngineConfig
from .errors import ErrorCode, PolicyDefectError, invalid_input
from .schedule import round_to_step, synthesize_weekly_schedule
from .schema import (
    BleedingContext, DoseRecommendation, GuidelineKind, INRBand, TargetRange,
    ThromboembolicRisk, TherapyPhase, UrgencyLevel, VitaminKRecommendation
)

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class BandRule:
    """One row of a guideline table: the action for a single non-bleeding INR band"""
    pct_change: float
    control_days: int
    urgency: UrgencyLevel
    rationale: str
    slow_pct_change: Optional[float] = None   # smaller step for slow metabolizers
    loading_fraction: Optional[float] = None  # one-off supplement, fraction of the usual daily dose
    suspended_doses: Optional[int] = 0        # None: hold until INR back in range
    notes: Tuple[str, ...] = ()
    warning: Optional[str] = None
    # Sub-row used once the INR reaches escalate_at (e.g. ACCP INR >= 10)
    escalate_at: Optional[float] = None
    escalated: Optional["BandRule"] = None

    def for_inr(self, inr: float) -> "BandRule":
        if self.escalated is not None and self.escalate_at is not None and inr >= self.escalate_at:
            return self.escalated
        return self

def check_exhaustive(table: Mapping[INRBand, object], table_name: str) -> None:
    """Every INRBand must have a row; a gap is a programming defect"""
    missing = [band.value for band in INRBand if band not in table]
    if missing:
        raise PolicyDefectError(
            error_code=ErrorCode.POL_UNHANDLED_BAND,
            message=f"{table_name} has no rule for bands {missing}",
            details={"table": table_name, "missing": missing}
        )

def adjust_by_percent(weekly_dose: float, pct: float, step: float = 2.5) -> float:
    """Apply the full percentage change, then round once to the dose step"""
    adjusted = Decimal(str(weekly_dose)) * (1 + Decimal(str(pct)) / Decimal(100))
    return round_to_step(float(adjusted), step)

def loading_supplement(weekly_dose: float, fraction: float, step: float = 2.5) -> float:
    """
    Same-day extra dose as a fraction of the usual daily dose (weekly / 7).

    Rounded to the dose step and never below one step, so that a 25% supplement
    on a small daily dose is still a half tablet.
    """
    daily = Decimal(str(weekly_dose)) / Decimal(7)
    amount = round_to_step(float(daily * Decimal(str(fraction))), step)
    return max(amount, step)

def loading_action(fraction: float, amount_mg: float) -> str:
    if fraction >= 1:
        return f"Double usual dose today (+{amount_mg:g} mg)"
    return f"Increase today's dose by {fraction * 100:g}% (+{amount_mg:g} mg)"

def validate_dose_inputs(inr: float, target: TargetRange, current_weekly_dose: float,
                         config: EngineConfig) -> None:
    """Reject out-of-bounds values before any banding happens"""
    if not config.min_inr_exclusive < inr <= config.max_inr:
        raise invalid_input(
            ErrorCode.INP_INR_OUT_OF_RANGE,
            f"INR must be in ({config.min_inr_exclusive:g}, {config.max_inr:g}]",
            inr=inr
        )
    if target.min <= 0 or target.min > config.max_target_inr:
        raise invalid_input(
            ErrorCode.INP_TARGET_MIN_INVALID,
            f"Target INR minimum must be in (0, {config.max_target_inr:g}]",
            target_min=target.min
        )
    if target.max <= target.min or target.max > config.max_target_inr:
        raise invalid_input(
            ErrorCode.INP_TARGET_RANGE_INVERTED,
            f"Target INR maximum must exceed the minimum and not exceed {config.max_target_inr:g}",
            target_min=target.min, target_max=target.max
        )
    if not 0 < current_weekly_dose <= config.max_weekly_dose_mg:
        raise invalid_input(
            ErrorCode.INP_DOSE_OUT_OF_RANGE,
            f"Weekly dose must be in (0, {config.max_weekly_dose_mg:g}] mg",
            current_weekly_dose=current_weekly_dose
        )

@dataclass
class EvaluationContext:
    """Validated inputs shared by the guideline and bleeding policies"""
    inr: float
    target: TargetRange
    band: INRBand
    current_weekly_dose: float
    phase: TherapyPhase
    is_compliant: bool
    is_slow_metabolizer: bool
    bleeding: BleedingContext
    risk_level: ThromboembolicRisk = ThromboembolicRisk.LOW
    ttr_percentage: Optional[float] = None
    today: Optional[date] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def high_thrombotic_risk(self) -> bool:
        return self.risk_level == ThromboembolicRisk.HIGH

class GuidelinePolicy:
    """Base class for a guideline family; subclasses supply the band table and intervals"""

    kind: GuidelineKind
    rules: Mapping[INRBand, BandRule]
    in_range_intervals: Dict[TherapyPhase, int]
    excellent_ttr_interval: int
    noncompliance_warning: str = (
        "WARNING: poor compliance reported. Check the 4D causes (dose, diet, drugs, disease) "
        "before changing the dose."
    )

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        check_exhaustive(self.rules, f"{self.kind.value} band table")
        # local import, bleeding depends on this module
        from .bleeding import BleedingPolicy
        self.bleeding_policy = BleedingPolicy(self.config)

    def classify(self, inr: float, target: TargetRange) -> INRBand:
        return bands.classify(inr, target, self.config.high_target_threshold)

    def evaluate(
        self,
        inr: float,
        target: TargetRange,
        current_weekly_dose: float,
        phase: TherapyPhase = TherapyPhase.MAINTENANCE,
        is_compliant: bool = True,
        is_slow_metabolizer: bool = False,
        bleeding: Optional[BleedingContext] = None,
        risk_level: ThromboembolicRisk = ThromboembolicRisk.LOW,
        ttr_percentage: Optional[float] = None,
        today: Optional[date] = None
    ) -> DoseRecommendation:
        """
        Evaluate one INR control under this guideline.

        Args:
            inr: Measured INR
            target: Therapeutic range for the indication
            current_weekly_dose: Weekly warfarin dose in mg currently taken
            phase: Therapy phase, drives the in-range re-check interval
            is_compliant: False adds a compliance warning
            is_slow_metabolizer: Use the smaller increase steps
            bleeding: Active bleeding; non-none routes to the shared bleeding policy
            risk_level: Thromboembolic risk tier, drives EBPM bridging below range
            ttr_percentage: Recent TTR, extends the maintenance interval when excellent
            today: Calendar day receiving any loading supplement

        Returns:
            DoseRecommendation with a rendered weekly schedule unless therapy is suspended
        """
        validate_dose_inputs(inr, target, current_weekly_dose, self.config)
        band = self.classify(inr, target)

        ctx = EvaluationContext(
            inr=inr,
            target=target,
            band=band,
            current_weekly_dose=current_weekly_dose,
            phase=phase,
            is_compliant=is_compliant,
            is_slow_metabolizer=is_slow_metabolizer,
            bleeding=bleeding or BleedingContext(),
            risk_level=risk_level,
            ttr_percentage=ttr_percentage,
            today=today,
            warnings=self._cross_cutting_warnings(current_weekly_dose, is_compliant, is_slow_metabolizer)
        )

        if ctx.bleeding.is_bleeding:
            recommendation = self.bleeding_policy.evaluate(ctx, self.kind)
        elif band == INRBand.IN_RANGE:
            recommendation = self._in_range(ctx)
        else:
            recommendation = self._apply_rule(ctx)

        recommendation = self._attach_schedule(recommendation, ctx)

        logger.info(
            f"{recommendation.source} evaluation: INR {inr} (target {target.min}-{target.max}) "
            f"band={band.value} urgency={recommendation.urgency.value} "
            f"dose {current_weekly_dose:g} -> {recommendation.suggested_weekly_dose_mg:g} mg/week, "
            f"control in {recommendation.next_control_days} days"
        )
        return recommendation

    def _cross_cutting_warnings(self, dose: float, is_compliant: bool, is_slow: bool) -> List[str]:
        warnings = []
        if not is_compliant:
            warnings.append(self.noncompliance_warning)
        if is_slow:
            warnings.append("SLOW METABOLIZER: small dose changes have a large effect on INR.")
        if dose < self.config.slow_metabolizer_threshold_mg:
            warnings.append(
                f"Weekly dose below {self.config.slow_metabolizer_threshold_mg:g} mg: possible slow metabolizer."
            )
        elif dose > self.config.high_dose_threshold_mg:
            warnings.append(
                f"Weekly dose above {self.config.high_dose_threshold_mg:g} mg: possible warfarin resistance."
            )
        return warnings

    def in_range_interval(self, phase: TherapyPhase, ttr_percentage: Optional[float]) -> Tuple[int, bool]:
        """Re-check interval for an in-range INR and whether the TTR extension applied"""
        excellent = self.config.ttr_quality_thresholds["excellent"]
        if phase == TherapyPhase.MAINTENANCE and ttr_percentage is not None and ttr_percentage >= excellent:
            return self.excellent_ttr_interval, True
        return self.in_range_intervals[phase], False

    def _in_range(self, ctx: EvaluationContext) -> DoseRecommendation:
        days, extended = self.in_range_interval(ctx.phase, ctx.ttr_percentage)
        rationale = f"INR in range: keep current weekly dose, re-check in {days} days ({ctx.phase.value})."
        if extended:
            rationale += f" Interval extended: TTR {ctx.ttr_percentage:g}% is excellent."
        return self._build(
            ctx,
            suggested=ctx.current_weekly_dose,
            rule=self.rules[INRBand.IN_RANGE],
            control_days=days,
            rationale=rationale
        )

    def _apply_rule(self, ctx: EvaluationContext) -> DoseRecommendation:
        rule = self.rules.get(ctx.band)
        if rule is None:
            raise PolicyDefectError(
                error_code=ErrorCode.POL_UNHANDLED_BAND,
                message=f"{self.kind.value} has no rule for band {ctx.band.value}",
                details={"band": ctx.band.value}
            )
        rule = rule.for_inr(ctx.inr)

        pct = rule.pct_change
        if ctx.is_slow_metabolizer and rule.slow_pct_change is not None:
            pct = rule.slow_pct_change
        suggested = adjust_by_percent(ctx.current_weekly_dose, pct, self.config.dose_step_mg)

        return self._build(ctx, suggested=suggested, rule=rule, pct=pct)

    def _build(self, ctx: EvaluationContext, suggested: float, rule: BandRule,
               pct: float = 0.0, control_days: Optional[int] = None,
               rationale: Optional[str] = None) -> DoseRecommendation:
        notes = list(rule.notes)
        warnings = list(ctx.warnings)

        loading_mg = None
        action = "No loading dose required"
        if rule.loading_fraction:
            loading_mg = loading_supplement(ctx.current_weekly_dose, rule.loading_fraction, self.config.dose_step_mg)
            action = loading_action(rule.loading_fraction, loading_mg)
        elif rule.suspended_doses is None:
            action = "Hold warfarin until INR is back in range"
        elif rule.suspended_doses:
            action = f"Skip {rule.suspended_doses} dose(s)"

        requires_ebpm = ctx.band.is_sub_therapeutic and requires_bridging(ctx.inr, ctx.risk_level, self.kind)
        ebpm_details = None
        if requires_ebpm:
            ebpm_details = "EBPM bridging at therapeutic dose until INR is back in range"
            warnings.append(
                f"EBPM bridging required: {ctx.risk_level.value} thromboembolic risk with INR {ctx.inr}."
            )
        elif ctx.band.is_sub_therapeutic and ctx.risk_level != ThromboembolicRisk.LOW:
            notes.append(f"EBPM not required at INR {ctx.inr} with {ctx.risk_level.value} thromboembolic risk.")

        vitamin_k = VitaminKRecommendation()
        if ctx.band.is_supra_therapeutic:
            vitamin_k = evaluate_vitamin_k(ctx.inr, self.kind)

        if rule.warning:
            warnings.append(rule.warning)
            logger.warning(f"{self.kind.value} INR {ctx.inr}: {rule.warning}")

        return DoseRecommendation(
            guideline=self.kind,
            source=self.kind.value,
            inr=ctx.inr,
            target=ctx.target,
            band=ctx.band,
            is_in_range=ctx.band == INRBand.IN_RANGE,
            bleeding=ctx.bleeding,
            high_thrombotic_risk=ctx.high_thrombotic_risk,
            thrombotic_risk=ctx.risk_level,
            current_weekly_dose_mg=ctx.current_weekly_dose,
            suggested_weekly_dose_mg=suggested,
            percentage_adjustment=pct,
            loading_dose_mg=loading_mg,
            loading_dose_action=action,
            suspended_doses=rule.suspended_doses,
            next_control_days=rule.control_days if control_days is None else control_days,
            urgency=rule.urgency,
            requires_ebpm=requires_ebpm,
            ebpm_details=ebpm_details,
            vitamin_k=vitamin_k,
            rationale=rationale or rule.rationale,
            clinical_notes=notes,
            warnings=warnings
        )

    def _attach_schedule(self, recommendation: DoseRecommendation, ctx: EvaluationContext) -> DoseRecommendation:
        if recommendation.suggested_weekly_dose_mg <= 0:
            return recommendation
        schedule = synthesize_weekly_schedule(
            recommendation.suggested_weekly_dose_mg,
            loading_supplement=recommendation.loading_dose_mg or 0.0,
            today=ctx.today,
            config=self.config
        )
        return recommendation.model_copy(update={"weekly_schedule": schedule})

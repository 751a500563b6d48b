"""
Bleeding management - one severity-graded protocol shared by the FCSA and ACCP policies
"""

import logging
from typing import Callable, Dict, Optional

from .config import EngineConfig
from .errors import ErrorCode, PolicyDefectError
from .policy import EvaluationContext, adjust_by_percent
from .schema import (
    BleedingContext, BleedingSite, BleedingType, DoseRecommendation, GuidelineKind,
    INRBand, UrgencyLevel, VitaminKRecommendation
)

logger = logging.getLogger(__name__)

BLEEDING_SOURCE = "ACCP/FCSA"

LIFE_THREATENING_SITES = (BleedingSite.INTRACRANIAL, BleedingSite.RETROPERITONEAL)

SITE_WARNINGS = {
    BleedingSite.INTRACRANIAL: "Intracranial bleeding: urgent brain CT/MRI and neurosurgical consult.",
    BleedingSite.RETROPERITONEAL: "Retroperitoneal bleeding: urgent abdominal CT and surgical consult.",
}

IV_ROUTE = "slow IV (10-20 min)"

def effective_bleeding(bleeding: BleedingContext) -> BleedingContext:
    """Critical sites are always treated as life-threatening"""
    if bleeding.is_bleeding and bleeding.site in LIFE_THREATENING_SITES:
        return BleedingContext(type=BleedingType.LIFE_THREATENING, site=bleeding.site)
    return bleeding

def minor_bleeding_vitamin_k_mg(inr: float) -> float:
    if inr < 5.0:
        return 1.0
    if inr < 8.0:
        return 2.0
    return 5.0

def pcc_units_per_kg(inr: float) -> int:
    if inr < 4.0:
        return 25
    if inr <= 6.0:
        return 35
    return 50

class BleedingPolicy:
    """Shared bleeding protocol; overrides the guideline tables whenever bleeding is present"""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.handlers: Dict[BleedingType, Callable[..., DoseRecommendation]] = {
            BleedingType.MINOR: self._minor,
            BleedingType.MAJOR: self._major,
            BleedingType.LIFE_THREATENING: self._life_threatening,
        }
        missing = [t.value for t in BleedingType if t != BleedingType.NONE and t not in self.handlers]
        if missing:
            raise PolicyDefectError(
                error_code=ErrorCode.POL_UNHANDLED_BAND,
                message=f"Bleeding policy has no handler for {missing}",
                details={"missing": missing}
            )

    def evaluate(self, ctx: EvaluationContext, guideline: GuidelineKind) -> DoseRecommendation:
        bleeding = effective_bleeding(ctx.bleeding)
        handler = self.handlers.get(bleeding.type)
        if handler is None:
            raise PolicyDefectError(
                error_code=ErrorCode.POL_UNHANDLED_BAND,
                message=f"Bleeding policy cannot handle type {bleeding.type.value}",
                details={"bleeding_type": bleeding.type.value, "band": ctx.band.value}
            )
        if bleeding.type != ctx.bleeding.type:
            logger.warning(f"{bleeding.site.value} bleeding escalated to life-threatening")
        return handler(ctx, guideline, bleeding)

    def _base(self, ctx: EvaluationContext, guideline: GuidelineKind,
              bleeding: BleedingContext, **fields) -> DoseRecommendation:
        return DoseRecommendation(
            guideline=guideline,
            source=BLEEDING_SOURCE,
            inr=ctx.inr,
            target=ctx.target,
            band=ctx.band,
            is_in_range=ctx.band == INRBand.IN_RANGE,
            bleeding=bleeding,
            high_thrombotic_risk=ctx.high_thrombotic_risk,
            thrombotic_risk=ctx.risk_level,
            current_weekly_dose_mg=ctx.current_weekly_dose,
            **fields
        )

    def _minor(self, ctx: EvaluationContext, guideline: GuidelineKind,
               bleeding: BleedingContext) -> DoseRecommendation:
        warnings = list(ctx.warnings)

        if ctx.band.is_supra_therapeutic:
            vitamin_k_mg = minor_bleeding_vitamin_k_mg(ctx.inr)
            return self._base(
                ctx, guideline, bleeding,
                suggested_weekly_dose_mg=adjust_by_percent(ctx.current_weekly_dose, -10.0, self.config.dose_step_mg),
                percentage_adjustment=-10.0,
                loading_dose_action="STOP warfarin: hold 1 dose",
                suspended_doses=1,
                next_control_days=1,
                urgency=UrgencyLevel.EMERGENZA,
                vitamin_k=VitaminKRecommendation(
                    is_recommended=True,
                    dose_mg=vitamin_k_mg,
                    route="oral",
                    urgency=UrgencyLevel.EMERGENZA,
                    notes=f"Vitamin K {vitamin_k_mg:g} mg oral for minor bleeding with INR {ctx.inr}"
                ),
                rationale="Minor bleeding with INR above range: hold one dose, oral Vitamin K, "
                          "reduce weekly dose by 10%.",
                clinical_notes=["Local hemostasis measures.", "Re-check INR in 24 hours."],
                warnings=warnings
            )

        return self._base(
            ctx, guideline, bleeding,
            suggested_weekly_dose_mg=ctx.current_weekly_dose,
            loading_dose_action="No loading dose while bleeding",
            next_control_days=3,
            urgency=UrgencyLevel.URGENTE,
            rationale="Minor bleeding with INR not above range: keep dose, local hemostasis, "
                      "investigate the bleeding source.",
            clinical_notes=[
                "Local hemostasis measures.",
                "Bleeding at therapeutic or low INR suggests an underlying lesion: work up the source."
            ],
            warnings=warnings
        )

    def _major(self, ctx: EvaluationContext, guideline: GuidelineKind,
               bleeding: BleedingContext) -> DoseRecommendation:
        units = pcc_units_per_kg(ctx.inr)
        warnings = list(ctx.warnings)
        warnings.append("MAJOR BLEEDING: immediate hospitalization required.")
        return self._base(
            ctx, guideline, bleeding,
            **self._reversal_fields(ctx, pcc_dose=f"{units} UI/kg (range 20-50 UI/kg)"),
            next_control_days=1,
            rationale="Major bleeding: suspend warfarin, IV Vitamin K and PCC, hospital admission.",
            clinical_notes=[
                f"PCC dose graded on INR {ctx.inr}: {units} UI/kg.",
                "Fresh frozen plasma 15 mL/kg if PCC unavailable.",
                "Re-check INR 30 minutes after PCC and again at 6-12 hours."
            ],
            warnings=warnings
        )

    def _life_threatening(self, ctx: EvaluationContext, guideline: GuidelineKind,
                          bleeding: BleedingContext) -> DoseRecommendation:
        warnings = list(ctx.warnings)
        warnings.append("LIFE-THREATENING BLEEDING: intensive care admission, immediate reversal.")
        if bleeding.site in SITE_WARNINGS:
            warnings.append(SITE_WARNINGS[bleeding.site])
        return self._base(
            ctx, guideline, bleeding,
            **self._reversal_fields(ctx, pcc_dose="50 UI/kg (FIRST CHOICE)"),
            next_control_days=0,
            rationale="Life-threatening bleeding: emergency reversal with PCC first choice, "
                      "IV Vitamin K, continuous monitoring.",
            clinical_notes=[
                "Continuous INR and hemodynamic monitoring.",
                "Fresh frozen plasma 15 mL/kg only if PCC unavailable."
            ],
            warnings=warnings
        )

    @staticmethod
    def _reversal_fields(ctx: EvaluationContext, pcc_dose: str) -> dict:
        return dict(
            suggested_weekly_dose_mg=0.0,
            percentage_adjustment=-100.0,
            loading_dose_action="STOP warfarin until bleeding is controlled",
            suspended_doses=None,
            urgency=UrgencyLevel.EMERGENZA,
            vitamin_k=VitaminKRecommendation(
                is_recommended=True,
                dose_mg=10.0,
                route=IV_ROUTE,
                urgency=UrgencyLevel.EMERGENZA,
                notes="Vitamin K 10 mg slow IV, repeat every 12 hours if needed"
            ),
            requires_pcc=True,
            pcc_dose=pcc_dose,
            requires_plasma=True,
            plasma_dose="15 mL/kg",
            requires_hospitalization=True
        )

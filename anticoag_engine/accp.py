"""
ACCP guideline policy (American College of Chest Physicians, CHEST 2012)
"""

from types import MappingProxyType

from .antidotes import ACCP_VITAMIN_K_INR
from .policy import BandRule, GuidelinePolicy
from .schema import GuidelineKind, INRBand, TherapyPhase, UrgencyLevel

NO_ROUTINE_VITAMIN_K = "NO routine Vitamin K below INR 10 without bleeding; monitor closely."

ACCP_RULES = MappingProxyType({
    INRBand.IN_RANGE: BandRule(
        pct_change=0.0,
        control_days=0,  # phase dependent
        urgency=UrgencyLevel.ROUTINE,
        rationale="INR in range: keep current weekly dose."
    ),
    INRBand.SUB_LIEVE: BandRule(
        pct_change=5.0,
        slow_pct_change=5.0,
        loading_fraction=0.25,
        control_days=14,
        urgency=UrgencyLevel.ROUTINE,
        rationale="INR slightly below range: small loading dose today and modest weekly dose increase."
    ),
    INRBand.SUB_MODERATO: BandRule(
        pct_change=7.5,
        slow_pct_change=5.0,
        loading_fraction=0.5,
        control_days=10,
        urgency=UrgencyLevel.ROUTINE,
        rationale="INR moderately below range: loading dose today and weekly dose increase.",
        notes=("ACCP does not bridge with EBPM at this INR level.",)
    ),
    INRBand.SUB_CRITICO: BandRule(
        pct_change=10.0,
        slow_pct_change=7.5,
        loading_fraction=1.0,
        control_days=7,
        urgency=UrgencyLevel.URGENTE,
        rationale="INR markedly below range: double dose today and weekly dose increase."
    ),
    INRBand.SOVRA_LIEVE: BandRule(
        pct_change=-5.0,
        control_days=14,
        urgency=UrgencyLevel.ROUTINE,
        rationale="INR slightly above range: small weekly dose reduction."
    ),
    INRBand.SOVRA_MODERATO: BandRule(
        pct_change=-7.5,
        control_days=10,
        urgency=UrgencyLevel.ROUTINE,
        rationale="INR moderately above range: reduce weekly dose."
    ),
    INRBand.SOVRA_ALTO: BandRule(
        pct_change=-10.0,
        suspended_doses=1,
        control_days=7,
        urgency=UrgencyLevel.URGENTE,
        rationale="INR high: skip one dose and reduce weekly dose."
    ),
    INRBand.SOVRA_MOLTO_ALTO: BandRule(
        pct_change=-10.0,
        suspended_doses=1,
        control_days=4,
        urgency=UrgencyLevel.URGENTE,
        rationale="INR very high: skip one dose and reduce weekly dose.",
        notes=(NO_ROUTINE_VITAMIN_K,)
    ),
    INRBand.SOVRA_CRITICO: BandRule(
        pct_change=-15.0,
        suspended_doses=2,
        control_days=2,
        urgency=UrgencyLevel.URGENTE,
        rationale="INR critical: skip two doses and reduce weekly dose, no antidote.",
        notes=(NO_ROUTINE_VITAMIN_K,)
    ),
    INRBand.SOVRA_ESTREMO: BandRule(
        pct_change=-15.0,
        suspended_doses=2,
        control_days=1,
        urgency=UrgencyLevel.EMERGENZA,
        rationale="INR extreme but below 10: skip two doses and reduce weekly dose, no antidote.",
        notes=(NO_ROUTINE_VITAMIN_K,),
        warning="INR extreme but below 10: Vitamin K withheld per ACCP, re-check tomorrow.",
        escalate_at=ACCP_VITAMIN_K_INR,
        escalated=BandRule(
            pct_change=-20.0,
            suspended_doses=None,
            control_days=1,
            urgency=UrgencyLevel.EMERGENZA,
            rationale="INR >= 10: hold warfarin until INR is back in range, oral Vitamin K.",
            notes=("ACCP gives oral Vitamin K from INR 10 without bleeding.",),
            warning="EMERGENCY: INR >= 10, assess for bleeding."
        )
    ),
})

class ACCPPolicy(GuidelinePolicy):
    """ACCP dosing: smaller steps, longer intervals, Vitamin K only from INR 10"""

    kind = GuidelineKind.ACCP
    rules = ACCP_RULES
    in_range_intervals = {
        TherapyPhase.INDUCTION: 7,
        TherapyPhase.POST_ADJUSTMENT: 14,
        TherapyPhase.MAINTENANCE: 42,
    }
    excellent_ttr_interval = 84
    noncompliance_warning = (
        "WARNING: poor compliance reported. Assess the 4D causes (dose, diet, drugs, disease) "
        "before adjusting the dose."
    )

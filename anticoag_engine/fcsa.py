"""
FCSA-SIMG guideline policy (Italian Federation of Anticoagulation Clinics)
"""

from types import MappingProxyType

from .policy import BandRule, GuidelinePolicy
from .schema import GuidelineKind, INRBand, TherapyPhase, UrgencyLevel

VITAMIN_K_ABOVE_SIX = "FCSA gives oral Vitamin K only above INR 6 when there is no bleeding."

FCSA_RULES = MappingProxyType({
    INRBand.IN_RANGE: BandRule(
        pct_change=0.0,
        control_days=0,  # phase dependent
        urgency=UrgencyLevel.ROUTINE,
        rationale="INR in range: keep current weekly dose."
    ),
    INRBand.SUB_LIEVE: BandRule(
        pct_change=7.5,
        slow_pct_change=5.0,
        loading_fraction=0.25,
        control_days=12,
        urgency=UrgencyLevel.ROUTINE,
        rationale="INR slightly below range: single small loading dose today and modest weekly dose increase."
    ),
    INRBand.SUB_MODERATO: BandRule(
        pct_change=11.25,
        slow_pct_change=7.5,
        loading_fraction=0.5,
        control_days=8,
        urgency=UrgencyLevel.ROUTINE,
        rationale="INR moderately below range: loading dose today and weekly dose increase."
    ),
    INRBand.SUB_CRITICO: BandRule(
        pct_change=17.5,
        slow_pct_change=12.5,
        loading_fraction=1.0,
        control_days=6,
        urgency=UrgencyLevel.URGENTE,
        rationale="INR markedly below range: double dose today and substantial weekly dose increase."
    ),
    INRBand.SOVRA_LIEVE: BandRule(
        pct_change=-7.5,
        control_days=10,
        urgency=UrgencyLevel.ROUTINE,
        rationale="INR slightly above range: small weekly dose reduction."
    ),
    INRBand.SOVRA_MODERATO: BandRule(
        pct_change=-10.0,
        suspended_doses=1,
        control_days=7,
        urgency=UrgencyLevel.ROUTINE,
        rationale="INR moderately above range: skip one dose and reduce weekly dose."
    ),
    INRBand.SOVRA_ALTO: BandRule(
        pct_change=-15.0,
        suspended_doses=1,
        control_days=5,
        urgency=UrgencyLevel.URGENTE,
        rationale="INR high: skip one dose and reduce weekly dose, close follow-up."
    ),
    INRBand.SOVRA_MOLTO_ALTO: BandRule(
        pct_change=-15.0,
        suspended_doses=2,
        control_days=3,
        urgency=UrgencyLevel.URGENTE,
        rationale="INR very high: skip two doses and reduce weekly dose.",
        notes=(VITAMIN_K_ABOVE_SIX, "Monitor for bleeding signs.")
    ),
    INRBand.SOVRA_CRITICO: BandRule(
        pct_change=-20.0,
        suspended_doses=3,
        control_days=1,
        urgency=UrgencyLevel.EMERGENZA,
        rationale="INR critical: skip three doses and reduce weekly dose, oral Vitamin K above INR 6.",
        notes=(VITAMIN_K_ABOVE_SIX,)
    ),
    INRBand.SOVRA_ESTREMO: BandRule(
        pct_change=-35.0,
        suspended_doses=None,
        control_days=1,
        urgency=UrgencyLevel.EMERGENZA,
        rationale="INR extreme: hold warfarin until INR is back in range, oral Vitamin K.",
        notes=("Resume at reduced dose once INR is back in range.",),
        warning="EMERGENCY: extreme INR, assess for bleeding and consider hospital evaluation."
    ),
})

class FCSAPolicy(GuidelinePolicy):
    """FCSA dosing: larger steps, Vitamin K above INR 6, EBPM from moderate thrombotic risk"""

    kind = GuidelineKind.FCSA
    rules = FCSA_RULES
    in_range_intervals = {
        TherapyPhase.INDUCTION: 7,
        TherapyPhase.POST_ADJUSTMENT: 14,
        TherapyPhase.MAINTENANCE: 28,
    }
    excellent_ttr_interval = 42

"""
Stand-alone bridging and Vitamin K evaluators, usable without a full dose evaluation.
The guideline policies call the same functions for their supra- and sub-therapeutic rows.
"""

from .schema import GuidelineKind, ThromboembolicRisk, UrgencyLevel, VitaminKRecommendation

# Oral Vitamin K without bleeding: FCSA strictly above INR 6, ACCP from INR 10
FCSA_VITAMIN_K_INR = 6.0
ACCP_VITAMIN_K_INR = 10.0

def requires_bridging(inr: float, risk_level: ThromboembolicRisk, guideline: GuidelineKind) -> bool:
    """
    Whether EBPM bridging is indicated for a sub-therapeutic INR.

    FCSA bridges from moderate risk below INR 1.5 and from high risk below 1.7;
    ACCP bridges only high-risk patients below INR 1.5.
    """
    if guideline == GuidelineKind.FCSA:
        if inr < 1.5 and risk_level in (ThromboembolicRisk.MODERATE, ThromboembolicRisk.HIGH):
            return True
        return inr < 1.7 and risk_level == ThromboembolicRisk.HIGH
    return inr < 1.5 and risk_level == ThromboembolicRisk.HIGH

def evaluate_vitamin_k(inr: float, guideline: GuidelineKind,
                       has_bleeding: bool = False) -> VitaminKRecommendation:
    if has_bleeding:
        if inr > 4.0:
            return VitaminKRecommendation(
                is_recommended=True,
                dose_mg=10.0 if inr > 10 else 5.0,
                route="slow IV (oral if minor bleeding)",
                urgency=UrgencyLevel.EMERGENZA,
                notes="Active bleeding: consider PCC for major bleeding"
            )
        return VitaminKRecommendation()

    if guideline == GuidelineKind.FCSA:
        if inr > FCSA_VITAMIN_K_INR:
            return VitaminKRecommendation(
                is_recommended=True,
                dose_mg=5.0 if inr > 10 else 2.5,
                route="oral",
                urgency=UrgencyLevel.EMERGENZA if inr > 10 else UrgencyLevel.URGENTE,
                notes="FCSA: oral Vitamin K for INR > 6 even without bleeding, re-check INR in 24 hours"
            )
        return VitaminKRecommendation()

    if inr >= ACCP_VITAMIN_K_INR:
        return VitaminKRecommendation(
            is_recommended=True,
            dose_mg=5.0,
            route="oral",
            urgency=UrgencyLevel.EMERGENZA,
            notes="ACCP: oral Vitamin K for INR >= 10 without bleeding, re-check INR in 24 hours"
        )
    if inr > 6.0:
        return VitaminKRecommendation(
            notes="ACCP: NO routine Vitamin K for INR 6-10 without bleeding. Monitor."
        )
    return VitaminKRecommendation()

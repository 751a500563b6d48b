"""
Perioperative bridge therapy - CHA2DS2-VASc scoring, surgical bleeding risk and
FCSA/ACCP recommendations for covering a warfarin interruption with EBPM
"""

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

from .errors import ErrorCode, invalid_input
from .schema import (
    BleedingRisk, BridgeDosageType, BridgeProtocol, BridgeRecommendation, CHA2DS2VAScFactors,
    GuidelineKind, SurgeryType, ThromboembolicRisk
)

logger = logging.getLogger(__name__)

SURGERY_BLEEDING_RISK: Dict[SurgeryType, BleedingRisk] = {
    SurgeryType.DIAGNOSTIC_ENDOSCOPY: BleedingRisk.LOW,
    SurgeryType.DIAGNOSTIC_COLONOSCOPY: BleedingRisk.LOW,
    SurgeryType.CARDIAC_CATHETERIZATION: BleedingRisk.LOW,
    SurgeryType.TRANSESOPHAGEAL_ECHO: BleedingRisk.LOW,
    SurgeryType.DERMATOLOGY_SINGLE_EXCISION: BleedingRisk.LOW,
    SurgeryType.OPHTHALMOLOGY_MINOR: BleedingRisk.LOW,
    SurgeryType.DENTAL_SINGLE_EXTRACTION: BleedingRisk.LOW,
    SurgeryType.ENDOSCOPY_WITH_BIOPSY: BleedingRisk.MODERATE,
    SurgeryType.POLYPECTOMY: BleedingRisk.MODERATE,
    SurgeryType.CARDIOVERSION: BleedingRisk.MODERATE,
    SurgeryType.PACEMAKER_IMPLANT: BleedingRisk.MODERATE,
    SurgeryType.ARTHROSCOPY_MINOR: BleedingRisk.MODERATE,
    SurgeryType.LAPAROSCOPIC_CHOLECYSTECTOMY: BleedingRisk.MODERATE,
    SurgeryType.TURP: BleedingRisk.MODERATE,
    SurgeryType.NEUROSURGERY: BleedingRisk.HIGH,
    SurgeryType.CARDIAC_SURGERY: BleedingRisk.HIGH,
    SurgeryType.VASCULAR_SURGERY: BleedingRisk.HIGH,
    SurgeryType.THORACIC_SURGERY: BleedingRisk.HIGH,
    SurgeryType.ABDOMINAL_SURGERY: BleedingRisk.HIGH,
    SurgeryType.HEPATIC_SURGERY: BleedingRisk.HIGH,
    SurgeryType.PANCREATIC_SURGERY: BleedingRisk.HIGH,
    SurgeryType.PROSTATE_SURGERY: BleedingRisk.HIGH,
    SurgeryType.RENAL_SURGERY: BleedingRisk.HIGH,
    SurgeryType.MAJOR_ORTHOPEDIC: BleedingRisk.HIGH,
    SurgeryType.EPIDURAL_ANESTHESIA: BleedingRisk.HIGH,
    SurgeryType.OPHTHALMOLOGY_SURGERY: BleedingRisk.HIGH,
    SurgeryType.DENTAL_MAJOR: BleedingRisk.HIGH,
}

NEURAXIAL_NOTES = (
    "Consider delaying resumption of anticoagulation.",
    "Epidural hematoma risk: wait at least 24 hours after the procedure.",
)
DENTAL_NOTES = (
    "Dental procedures: consider continuing warfarin with INR 2.0-2.5.",
    "Local hemostasis with tranexamic acid mouthwash.",
)
ENDOSCOPY_NOTES = ("Endoscopy: bridging depends on the procedure (biopsy, polypectomy).",)
CARDIOVASCULAR_NOTES = ("Coordinate anticoagulation with the cardiac/vascular surgical team.",)

SURGERY_NOTES = {
    SurgeryType.NEUROSURGERY: NEURAXIAL_NOTES,
    SurgeryType.EPIDURAL_ANESTHESIA: NEURAXIAL_NOTES,
    SurgeryType.DENTAL_SINGLE_EXTRACTION: DENTAL_NOTES,
    SurgeryType.DENTAL_MAJOR: DENTAL_NOTES,
    SurgeryType.DIAGNOSTIC_ENDOSCOPY: ENDOSCOPY_NOTES,
    SurgeryType.DIAGNOSTIC_COLONOSCOPY: ENDOSCOPY_NOTES,
    SurgeryType.ENDOSCOPY_WITH_BIOPSY: ENDOSCOPY_NOTES,
    SurgeryType.POLYPECTOMY: ENDOSCOPY_NOTES,
    SurgeryType.CARDIAC_SURGERY: CARDIOVASCULAR_NOTES,
    SurgeryType.VASCULAR_SURGERY: CARDIOVASCULAR_NOTES,
}

NEURAXIAL_SURGERY = (SurgeryType.NEUROSURGERY, SurgeryType.EPIDURAL_ANESTHESIA)

EBPM_DRUG = "Enoxaparin"
EBPM_DOSING = {
    BridgeDosageType.THERAPEUTIC: ("1 mg/kg", "every 12 hours"),
    BridgeDosageType.PROPHYLACTIC: ("4000 IU (40 mg)", "once daily"),
}

ELDERLY_AGE = 75

def cha2ds2_vasc_score(factors: CHA2DS2VAScFactors) -> int:
    """CHA2DS2-VASc: age 65-74 +1, >= 75 +2, prior stroke/TIA/TE +2, every other factor +1"""
    if factors.age < 0:
        raise invalid_input(ErrorCode.INP_PATIENT_INPUT_INVALID, "Age cannot be negative", age=factors.age)

    score = 0
    if factors.age >= 75:
        score += 2
    elif factors.age >= 65:
        score += 1
    if factors.stroke_tia_thromboembolism:
        score += 2
    score += sum([
        factors.congestive_heart_failure,
        factors.hypertension,
        factors.diabetes,
        factors.vascular_disease,
        factors.is_female,
    ])
    return score

def surgery_bleeding_risk(surgery_type: SurgeryType) -> BleedingRisk:
    """Procedural bleeding tier; unlisted procedures count as moderate"""
    return SURGERY_BLEEDING_RISK.get(SurgeryType(surgery_type), BleedingRisk.MODERATE)

def fcsa_recommendation(risk: ThromboembolicRisk, bleeding_risk: BleedingRisk,
                        has_mechanical_valve: bool = False) -> BridgeRecommendation:
    if has_mechanical_valve:
        return BridgeRecommendation(
            guideline=GuidelineKind.FCSA,
            bridge_recommended=True,
            dosage_type=BridgeDosageType.THERAPEUTIC,
            rationale="Mechanical heart valve: therapeutic bridging is mandatory.",
            warnings=["High thrombotic risk without anticoagulation."]
        )

    if risk == ThromboembolicRisk.HIGH:
        # prophylactic dose when the surgery itself bleeds
        if bleeding_risk == BleedingRisk.HIGH:
            return BridgeRecommendation(
                guideline=GuidelineKind.FCSA,
                bridge_recommended=True,
                dosage_type=BridgeDosageType.PROPHYLACTIC,
                rationale="High thromboembolic risk: bridging recommended.",
                warnings=["Balance the high thromboembolic risk against the surgical bleeding risk."]
            )
        return BridgeRecommendation(
            guideline=GuidelineKind.FCSA,
            bridge_recommended=True,
            dosage_type=BridgeDosageType.THERAPEUTIC,
            rationale="High thromboembolic risk: bridging recommended."
        )

    if risk == ThromboembolicRisk.MODERATE:
        if bleeding_risk == BleedingRisk.HIGH:
            return BridgeRecommendation(
                guideline=GuidelineKind.FCSA,
                bridge_recommended=False,
                rationale="Moderate thromboembolic risk with high bleeding risk: no bridging (BRIDGE trial).",
                warnings=["Assess case by case according to the type of surgery."]
            )
        return BridgeRecommendation(
            guideline=GuidelineKind.FCSA,
            bridge_recommended=True,
            dosage_type=BridgeDosageType.PROPHYLACTIC,
            rationale="Moderate thromboembolic risk: prophylactic bridging may be considered.",
            warnings=["Individualize the decision."]
        )

    return BridgeRecommendation(
        guideline=GuidelineKind.FCSA,
        bridge_recommended=False,
        rationale="Low thromboembolic risk: bridging NOT recommended."
    )

def accp_recommendation(risk: ThromboembolicRisk, bleeding_risk: BleedingRisk,
                        has_mechanical_valve: bool = False) -> BridgeRecommendation:
    if has_mechanical_valve:
        return BridgeRecommendation(
            guideline=GuidelineKind.ACCP,
            bridge_recommended=True,
            dosage_type=BridgeDosageType.THERAPEUTIC,
            rationale="Mechanical heart valve: bridging suggested (Grade 2C).",
            warnings=["Consider the bleeding risk of the specific procedure."]
        )

    if risk == ThromboembolicRisk.HIGH:
        return BridgeRecommendation(
            guideline=GuidelineKind.ACCP,
            bridge_recommended=True,
            dosage_type=BridgeDosageType.THERAPEUTIC,
            rationale="High thromboembolic risk: bridging suggested (Grade 2C).",
            warnings=["Weigh risk and benefit carefully."] if bleeding_risk == BleedingRisk.HIGH else []
        )

    return BridgeRecommendation(
        guideline=GuidelineKind.ACCP,
        bridge_recommended=False,
        rationale="Thromboembolic risk not high: no bridging (BRIDGE trial 2015).",
        warnings=["The BRIDGE trial showed no-bridging is non-inferior in moderate-risk atrial fibrillation."]
    )

RECOMMENDERS = {
    GuidelineKind.FCSA: fcsa_recommendation,
    GuidelineKind.ACCP: accp_recommendation,
}

class BridgeTherapyPlanner:
    """Builds the dated perioperative plan around a warfarin interruption"""

    WARFARIN_STOP_DAYS = 5
    EBPM_START_DAYS = 3
    PRE_OP_INR_DAYS = 1
    POST_OP_INR_DAYS = 5

    def recommend(self, guideline: GuidelineKind, risk: ThromboembolicRisk, bleeding_risk: BleedingRisk,
                  has_mechanical_valve: bool = False) -> BridgeRecommendation:
        return RECOMMENDERS[GuidelineKind(guideline)](risk, bleeding_risk, has_mechanical_valve)

    def generate_protocol(
        self,
        guideline: GuidelineKind,
        surgery_date: date,
        surgery_type: SurgeryType,
        risk: ThromboembolicRisk,
        has_mechanical_valve: bool = False,
        age: Optional[int] = None,
        cha2ds2_vasc: Optional[int] = None
    ) -> BridgeProtocol:
        """
        Plan warfarin interruption and EBPM bridging for a procedure.

        Timeline: warfarin stops on day -5, INR is checked on day -1 (must be < 1.5) and
        warfarin resumes on the evening of surgery. When bridging, EBPM runs from day -3 to
        day -1 and restarts on day +1 unless the procedure carries a high bleeding risk.
        INR is re-checked on day +5.

        Args:
            guideline: FCSA or ACCP recommendation rules
            surgery_date: Day 0
            surgery_type: Procedure, sets the bleeding-risk tier
            risk: Thromboembolic risk tier
            has_mechanical_valve: Always bridged at therapeutic dose
            age: Patient age, adds elderly warnings above 75
            cha2ds2_vasc: Score carried into the plan for reference

        Returns:
            BridgeProtocol with the other guideline's rationale as a comparison
        """
        if age is not None and age < 0:
            raise invalid_input(ErrorCode.INP_PATIENT_INPUT_INVALID, "Age cannot be negative", age=age)

        guideline = GuidelineKind(guideline)
        bleeding_risk = surgery_bleeding_risk(surgery_type)
        recommendation = self.recommend(guideline, risk, bleeding_risk, has_mechanical_valve)
        other = GuidelineKind.ACCP if guideline == GuidelineKind.FCSA else GuidelineKind.FCSA
        comparison = self.recommend(other, risk, bleeding_risk, has_mechanical_valve)

        bridging = recommendation.bridge_recommended and recommendation.dosage_type != BridgeDosageType.NONE
        ebpm_dosage, ebpm_frequency = EBPM_DOSING.get(recommendation.dosage_type, (None, None))

        protocol = BridgeProtocol(
            guideline=guideline,
            surgery_date=surgery_date,
            surgery_type=surgery_type,
            thrombotic_risk=risk,
            bleeding_risk=bleeding_risk,
            cha2ds2_vasc=cha2ds2_vasc,
            bridge_recommended=recommendation.bridge_recommended,
            dosage_type=recommendation.dosage_type,
            rationale=recommendation.rationale,
            warfarin_stop_date=surgery_date - timedelta(days=self.WARFARIN_STOP_DAYS),
            pre_op_inr_check_date=surgery_date - timedelta(days=self.PRE_OP_INR_DAYS),
            ebpm_start_date=surgery_date - timedelta(days=self.EBPM_START_DAYS) if bridging else None,
            ebpm_last_dose_date=surgery_date - timedelta(days=1) if bridging else None,
            warfarin_resume_date=surgery_date,
            ebpm_resume_date=(surgery_date + timedelta(days=1)
                              if bridging and bleeding_risk != BleedingRisk.HIGH else None),
            post_op_inr_check_date=surgery_date + timedelta(days=self.POST_OP_INR_DAYS),
            ebpm_drug=EBPM_DRUG if bridging else None,
            ebpm_dosage=ebpm_dosage if bridging else None,
            ebpm_frequency=ebpm_frequency if bridging else None,
            comparison=f"{other.value}: {comparison.rationale}",
            clinical_notes=self._clinical_notes(surgery_type, bleeding_risk, age),
            warnings=list(recommendation.warnings) + self._warnings(surgery_type, bleeding_risk, age)
        )

        logger.info(
            f"{guideline.value} bridge plan for {surgery_type.value} on {surgery_date}: "
            f"risk={risk.value} bleeding={bleeding_risk.value} "
            f"bridge={protocol.bridge_recommended} ({protocol.dosage_type.value})"
        )
        return protocol

    @staticmethod
    def _clinical_notes(surgery_type: SurgeryType, bleeding_risk: BleedingRisk, age: Optional[int]) -> List[str]:
        notes = [
            "Check for contraindications to EBPM.",
            "Check renal function before starting EBPM.",
        ]
        if age is not None and age > ELDERLY_AGE:
            notes.append("Elderly patient: consider a reduced EBPM dose.")
        if bleeding_risk == BleedingRisk.HIGH:
            notes.append("Confirm hemostasis before resuming anticoagulation.")
        notes.extend(SURGERY_NOTES.get(surgery_type, ()))
        return notes

    @staticmethod
    def _warnings(surgery_type: SurgeryType, bleeding_risk: BleedingRisk, age: Optional[int]) -> List[str]:
        warnings = []
        if age is not None and age > ELDERLY_AGE:
            warnings.append(f"Increased bleeding risk for age > {ELDERLY_AGE}.")
        if bleeding_risk == BleedingRisk.HIGH:
            warnings.append("High bleeding-risk surgery: coordinate with the surgical team.")
        if surgery_type in NEURAXIAL_SURGERY:
            warnings.append("NEUROSURGERY/NEURAXIAL ANESTHESIA: maximum caution, consult a specialist.")
        return warnings

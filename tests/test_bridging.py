#!/usr/bin/env python3
"""
Unit tests for perioperative bridge therapy planning
"""

import logging
import pytest
from datetime import date
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from anticoag_engine.bridging import (
    BridgeTherapyPlanner, accp_recommendation, cha2ds2_vasc_score, fcsa_recommendation,
    surgery_bleeding_risk
)
from anticoag_engine.engine import AnticoagulationEngine
from anticoag_engine.errors import ErrorCode, InvalidInputError
from anticoag_engine.schema import (
    BleedingRisk, BridgeDosageType, CHA2DS2VAScFactors, GuidelineKind, RiskInputs, SurgeryType,
    ThromboembolicRisk
)

SURGERY_DAY = date(2026, 3, 10)

class TestCHA2DS2VASc:
    """Stroke-risk score"""

    @pytest.mark.parametrize("factors,score", [
        (CHA2DS2VAScFactors(age=50), 0),
        (CHA2DS2VAScFactors(age=65), 1),
        (CHA2DS2VAScFactors(age=74, is_female=True), 2),
        (CHA2DS2VAScFactors(age=75), 2),
        (CHA2DS2VAScFactors(age=60, stroke_tia_thromboembolism=True), 2),
        (CHA2DS2VAScFactors(age=80, is_female=True, congestive_heart_failure=True, hypertension=True,
                            diabetes=True, stroke_tia_thromboembolism=True, vascular_disease=True), 9),
    ])
    def test_score(self, factors, score):
        assert cha2ds2_vasc_score(factors) == score

    def test_negative_age_rejected(self):
        with pytest.raises(InvalidInputError) as exc_info:
            cha2ds2_vasc_score(CHA2DS2VAScFactors(age=-1))
        assert exc_info.value.error_code == ErrorCode.INP_PATIENT_INPUT_INVALID

class TestSurgeryBleedingRisk:
    """Procedure tiers"""

    @pytest.mark.parametrize("surgery,risk", [
        (SurgeryType.DENTAL_SINGLE_EXTRACTION, BleedingRisk.LOW),
        (SurgeryType.POLYPECTOMY, BleedingRisk.MODERATE),
        (SurgeryType.NEUROSURGERY, BleedingRisk.HIGH),
        (SurgeryType.OTHER, BleedingRisk.MODERATE),
        ("major_orthopedic", BleedingRisk.HIGH),
    ])
    def test_tier(self, surgery, risk):
        assert surgery_bleeding_risk(surgery) == risk

class TestRecommendations:
    """FCSA bridges more readily than ACCP"""

    def test_mechanical_valve_always_therapeutic(self):
        for recommend in (fcsa_recommendation, accp_recommendation):
            rec = recommend(ThromboembolicRisk.LOW, BleedingRisk.HIGH, has_mechanical_valve=True)
            assert rec.bridge_recommended
            assert rec.dosage_type == BridgeDosageType.THERAPEUTIC

    def test_fcsa_high_risk(self):
        rec = fcsa_recommendation(ThromboembolicRisk.HIGH, BleedingRisk.MODERATE)
        assert rec.dosage_type == BridgeDosageType.THERAPEUTIC
        assert rec.warnings == []

    def test_fcsa_high_risk_high_bleeding_is_prophylactic(self):
        rec = fcsa_recommendation(ThromboembolicRisk.HIGH, BleedingRisk.HIGH)
        assert rec.bridge_recommended
        assert rec.dosage_type == BridgeDosageType.PROPHYLACTIC
        assert rec.warnings

    def test_fcsa_moderate_risk(self):
        rec = fcsa_recommendation(ThromboembolicRisk.MODERATE, BleedingRisk.LOW)
        assert rec.bridge_recommended
        assert rec.dosage_type == BridgeDosageType.PROPHYLACTIC

    def test_fcsa_moderate_risk_high_bleeding(self):
        rec = fcsa_recommendation(ThromboembolicRisk.MODERATE, BleedingRisk.HIGH)
        assert not rec.bridge_recommended
        assert rec.dosage_type == BridgeDosageType.NONE

    def test_fcsa_low_risk(self):
        assert not fcsa_recommendation(ThromboembolicRisk.LOW, BleedingRisk.LOW).bridge_recommended

    def test_accp_moderate_risk_no_bridge(self):
        rec = accp_recommendation(ThromboembolicRisk.MODERATE, BleedingRisk.LOW)

        assert not rec.bridge_recommended
        assert "BRIDGE" in rec.rationale
        assert rec.warnings

    def test_accp_high_risk(self):
        rec = accp_recommendation(ThromboembolicRisk.HIGH, BleedingRisk.HIGH)
        assert rec.dosage_type == BridgeDosageType.THERAPEUTIC
        assert rec.warnings

class TestBridgeProtocol:
    """Dated perioperative plan"""

    def setup_method(self):
        self.planner = BridgeTherapyPlanner()

    def test_bridged_timeline(self):
        protocol = self.planner.generate_protocol(
            GuidelineKind.FCSA, SURGERY_DAY, SurgeryType.POLYPECTOMY, ThromboembolicRisk.HIGH
        )

        assert protocol.bridge_recommended
        assert protocol.dosage_type == BridgeDosageType.THERAPEUTIC
        assert protocol.warfarin_stop_date == date(2026, 3, 5)
        assert protocol.ebpm_start_date == date(2026, 3, 7)
        assert protocol.ebpm_last_dose_date == date(2026, 3, 9)
        assert protocol.pre_op_inr_check_date == date(2026, 3, 9)
        assert protocol.warfarin_resume_date == SURGERY_DAY
        assert protocol.ebpm_resume_date == date(2026, 3, 11)
        assert protocol.post_op_inr_check_date == date(2026, 3, 15)
        assert protocol.ebpm_drug == "Enoxaparin"
        assert protocol.ebpm_dosage == "1 mg/kg"
        assert protocol.ebpm_frequency == "every 12 hours"

    def test_no_bridge_has_no_ebpm_dates(self):
        protocol = self.planner.generate_protocol(
            GuidelineKind.ACCP, SURGERY_DAY, SurgeryType.CARDIOVERSION, ThromboembolicRisk.MODERATE
        )

        assert not protocol.bridge_recommended
        assert protocol.ebpm_start_date is None
        assert protocol.ebpm_resume_date is None
        assert protocol.ebpm_drug is None
        assert protocol.warfarin_stop_date == date(2026, 3, 5)
        assert protocol.comparison.startswith("FCSA: Moderate")

    def test_high_bleeding_delays_ebpm_resumption(self):
        protocol = self.planner.generate_protocol(
            GuidelineKind.FCSA, SURGERY_DAY, SurgeryType.MAJOR_ORTHOPEDIC, ThromboembolicRisk.MODERATE,
            has_mechanical_valve=True
        )

        assert protocol.bleeding_risk == BleedingRisk.HIGH
        assert protocol.ebpm_start_date == date(2026, 3, 7)
        assert protocol.ebpm_resume_date is None
        assert any("coordinate with the surgical team" in w for w in protocol.warnings)

    def test_prophylactic_dosing(self):
        protocol = self.planner.generate_protocol(
            GuidelineKind.FCSA, SURGERY_DAY, SurgeryType.TURP, ThromboembolicRisk.MODERATE
        )

        assert protocol.dosage_type == BridgeDosageType.PROPHYLACTIC
        assert protocol.ebpm_dosage == "4000 IU (40 mg)"
        assert protocol.ebpm_frequency == "once daily"

    def test_neuraxial_notes_and_warning(self):
        protocol = self.planner.generate_protocol(
            GuidelineKind.FCSA, SURGERY_DAY, SurgeryType.EPIDURAL_ANESTHESIA, ThromboembolicRisk.LOW
        )

        assert any("Epidural hematoma" in note for note in protocol.clinical_notes)
        assert any("NEURAXIAL" in w for w in protocol.warnings)

    def test_dental_notes(self):
        protocol = self.planner.generate_protocol(
            GuidelineKind.FCSA, SURGERY_DAY, SurgeryType.DENTAL_SINGLE_EXTRACTION, ThromboembolicRisk.LOW
        )
        assert any("tranexamic acid" in note for note in protocol.clinical_notes)

    def test_elderly_patient(self):
        protocol = self.planner.generate_protocol(
            GuidelineKind.FCSA, SURGERY_DAY, SurgeryType.POLYPECTOMY, ThromboembolicRisk.HIGH, age=82
        )

        assert any("reduced EBPM dose" in note for note in protocol.clinical_notes)
        assert "Increased bleeding risk for age > 75." in protocol.warnings

    def test_negative_age_rejected(self):
        with pytest.raises(InvalidInputError):
            self.planner.generate_protocol(
                GuidelineKind.FCSA, SURGERY_DAY, SurgeryType.OTHER, ThromboembolicRisk.LOW, age=-3
            )

    def test_logs_plan(self, caplog):
        with caplog.at_level(logging.INFO, logger="anticoag_engine"):
            self.planner.generate_protocol(
                GuidelineKind.ACCP, SURGERY_DAY, SurgeryType.OTHER, ThromboembolicRisk.LOW
            )
        assert any("bridge plan" in r.getMessage() for r in caplog.records)

class TestEngineBridgePlan:
    """Engine facade derives the risk tier before planning"""

    def setup_method(self):
        self.engine = AnticoagulationEngine()

    def test_score_from_factors_sets_risk(self):
        factors = CHA2DS2VAScFactors(age=78, hypertension=True, diabetes=True)
        protocol = self.engine.plan_bridge(GuidelineKind.FCSA, SURGERY_DAY, SurgeryType.POLYPECTOMY,
                                           factors=factors)

        assert protocol.cha2ds2_vasc == 4
        assert protocol.thrombotic_risk == ThromboembolicRisk.HIGH
        assert protocol.dosage_type == BridgeDosageType.THERAPEUTIC
        assert any("reduced EBPM dose" in note for note in protocol.clinical_notes)

    def test_mechanical_valve_from_risk_inputs(self):
        protocol = self.engine.plan_bridge(GuidelineKind.ACCP, SURGERY_DAY, SurgeryType.CARDIOVERSION,
                                           risk_inputs=RiskInputs(has_mechanical_valve=True))

        assert protocol.bridge_recommended
        assert "Mechanical heart valve" in protocol.rationale

    def test_no_inputs_is_low_risk(self):
        protocol = self.engine.plan_bridge(GuidelineKind.FCSA, SURGERY_DAY, SurgeryType.OTHER)

        assert protocol.thrombotic_risk == ThromboembolicRisk.LOW
        assert not protocol.bridge_recommended
        assert protocol.cha2ds2_vasc is None

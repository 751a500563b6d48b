#!/usr/bin/env python3
"""
Unit tests for the FCSA dose-adjustment policy
"""

import pytest
from datetime import date
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from anticoag_engine.antidotes import evaluate_vitamin_k, requires_bridging
from anticoag_engine.engine import evaluate_fcsa
from anticoag_engine.errors import ErrorCode, InvalidInputError
from anticoag_engine.schema import (
    GuidelineKind, INRBand, RiskInputs, ThromboembolicRisk, TherapyPhase, UrgencyLevel
)

TODAY = date(2026, 10, 19)

class TestFCSASubTherapeutic:
    """INR below range"""

    def test_sub_critico_example(self):
        rec = evaluate_fcsa(1.4, 2.0, 3.0, 35.0, today=TODAY)

        assert rec.band == INRBand.SUB_CRITICO
        assert rec.percentage_adjustment == 17.5
        assert rec.suggested_weekly_dose_mg == 40.0
        assert rec.loading_dose_mg == 5.0
        assert rec.loading_dose_action == "Double usual dose today (+5 mg)"
        assert rec.next_control_days == 6
        assert rec.urgency == UrgencyLevel.URGENTE
        assert not rec.requires_ebpm
        assert rec.source == "FCSA"

    def test_schedule_carries_loading_supplement(self):
        rec = evaluate_fcsa(1.4, 2.0, 3.0, 35.0, today=TODAY)
        schedule = rec.weekly_schedule

        assert schedule is not None
        assert schedule.recurring_weekly_dose == 40.0
        assert schedule.total_weekly_dose == 45.0
        assert schedule.loading_day == TODAY
        assert schedule.is_valid()

    def test_high_risk_triggers_ebpm(self):
        rec = evaluate_fcsa(1.4, 2.0, 3.0, 35.0, risk_inputs=RiskInputs(has_mechanical_valve=True))

        assert rec.requires_ebpm
        assert rec.high_thrombotic_risk
        assert rec.ebpm_details
        assert any("EBPM" in w for w in rec.warnings)

    def test_sub_moderato_bridges_when_high_risk(self):
        rec = evaluate_fcsa(1.6, 2.0, 3.0, 35.0, risk_inputs=RiskInputs(declared_risk=ThromboembolicRisk.HIGH))

        assert rec.band == INRBand.SUB_MODERATO
        assert rec.requires_ebpm
        assert rec.loading_dose_mg == 2.5
        assert "50%" in rec.loading_dose_action
        assert rec.next_control_days == 8

    def test_sub_lieve_small_loading(self):
        rec = evaluate_fcsa(1.9, 2.0, 3.0, 35.0)

        assert rec.band == INRBand.SUB_LIEVE
        assert rec.percentage_adjustment == 7.5
        # 25% of 5 mg/day rounds to a half tablet
        assert rec.loading_dose_mg == 2.5
        assert "25%" in rec.loading_dose_action
        assert rec.next_control_days == 12
        assert rec.urgency == UrgencyLevel.ROUTINE

    def test_slow_metabolizer_uses_smaller_step(self):
        normal = evaluate_fcsa(1.4, 2.0, 3.0, 40.0)
        slow = evaluate_fcsa(1.4, 2.0, 3.0, 40.0, is_slow_metabolizer=True)

        assert normal.percentage_adjustment == 17.5
        assert normal.suggested_weekly_dose_mg == 47.5
        assert slow.percentage_adjustment == 12.5
        assert slow.suggested_weekly_dose_mg == 45.0
        assert any("SLOW METABOLIZER" in w for w in slow.warnings)

    @pytest.mark.parametrize("inr,weekly,loading", [
        (1.9, 70.0, 2.5),
        (1.6, 70.0, 5.0),
        (1.4, 70.0, 10.0),
        (1.4, 17.5, 2.5),
    ])
    def test_loading_is_fraction_of_daily_dose(self, inr, weekly, loading):
        rec = evaluate_fcsa(inr, 2.0, 3.0, weekly)
        assert rec.loading_dose_mg == loading

class TestFCSASupraTherapeutic:
    """INR above range without bleeding"""

    def test_sovra_critico_example(self):
        rec = evaluate_fcsa(6.5, 2.0, 3.0, 35.0)

        assert rec.band == INRBand.SOVRA_CRITICO
        assert rec.percentage_adjustment == -20.0
        assert rec.suggested_weekly_dose_mg == 27.5
        assert rec.requires_vitamin_k
        assert rec.vitamin_k.dose_mg == 2.5
        assert rec.vitamin_k.route == "oral"
        assert rec.next_control_days == 1
        assert rec.suspended_doses == 3
        assert rec.urgency == UrgencyLevel.EMERGENZA

    def test_molto_alto_no_vitamin_k(self):
        rec = evaluate_fcsa(5.5, 2.0, 3.0, 35.0)

        assert rec.band == INRBand.SOVRA_MOLTO_ALTO
        assert not rec.requires_vitamin_k
        assert rec.suspended_doses == 2
        assert rec.next_control_days == 3
        assert any("Vitamin K" in note for note in rec.clinical_notes)

    def test_estremo_holds_until_in_range(self):
        rec = evaluate_fcsa(9.0, 2.0, 3.0, 35.0)

        assert rec.band == INRBand.SOVRA_ESTREMO
        assert rec.suspended_doses is None
        assert rec.percentage_adjustment == -35.0
        assert rec.suggested_weekly_dose_mg == 22.5
        assert rec.vitamin_k.dose_mg == 2.5
        assert any("EMERGENCY" in w for w in rec.warnings)

    @pytest.mark.parametrize("inr,band,pct,suspended,control", [
        (3.2, INRBand.SOVRA_LIEVE, -7.5, 0, 10),
        (3.7, INRBand.SOVRA_MODERATO, -10.0, 1, 7),
        (4.5, INRBand.SOVRA_ALTO, -15.0, 1, 5),
    ])
    def test_mild_supra_bands(self, inr, band, pct, suspended, control):
        rec = evaluate_fcsa(inr, 2.0, 3.0, 35.0)

        assert rec.band == band
        assert rec.percentage_adjustment == pct
        assert rec.suspended_doses == suspended
        assert rec.next_control_days == control
        assert not rec.requires_vitamin_k

class TestFCSABridging:
    """EBPM decided by thromboembolic risk tier and INR"""

    def test_moderate_risk_bridges_below_1_5(self):
        rec = evaluate_fcsa(1.3, 2.0, 3.0, 35.0, risk_inputs=RiskInputs(declared_risk=ThromboembolicRisk.MODERATE))

        assert rec.requires_ebpm
        assert not rec.high_thrombotic_risk
        assert rec.thrombotic_risk == ThromboembolicRisk.MODERATE
        assert any("moderate thromboembolic risk" in w for w in rec.warnings)

    def test_moderate_risk_from_cha2ds2_vasc(self):
        rec = evaluate_fcsa(1.4, 2.0, 3.0, 35.0, risk_inputs=RiskInputs(cha2ds2_vasc=3))
        assert rec.requires_ebpm

    def test_moderate_risk_no_bridge_at_1_6(self):
        rec = evaluate_fcsa(1.6, 2.0, 3.0, 35.0, risk_inputs=RiskInputs(declared_risk=ThromboembolicRisk.MODERATE))

        assert not rec.requires_ebpm
        assert any("EBPM not required" in note for note in rec.clinical_notes)

    def test_high_risk_no_bridge_at_1_7(self):
        rec = evaluate_fcsa(1.7, 2.0, 3.0, 35.0, risk_inputs=RiskInputs(has_mechanical_valve=True))
        assert not rec.requires_ebpm

    def test_low_risk_never_bridges(self):
        rec = evaluate_fcsa(1.2, 2.0, 3.0, 35.0, risk_inputs=RiskInputs(cha2ds2_vasc=1))

        assert not rec.requires_ebpm
        assert rec.thrombotic_risk == ThromboembolicRisk.LOW

    @pytest.mark.parametrize("inr,risk", [
        (1.2, ThromboembolicRisk.LOW),
        (1.4, ThromboembolicRisk.MODERATE),
        (1.6, ThromboembolicRisk.MODERATE),
        (1.4, ThromboembolicRisk.HIGH),
        (1.65, ThromboembolicRisk.HIGH),
        (1.9, ThromboembolicRisk.HIGH),
    ])
    def test_agrees_with_requires_bridging(self, inr, risk):
        rec = evaluate_fcsa(inr, 2.0, 3.0, 35.0, risk_inputs=RiskInputs(declared_risk=risk))
        assert rec.requires_ebpm == requires_bridging(inr, risk, GuidelineKind.FCSA)

class TestFCSAVitaminK:
    """Vitamin K without bleeding strictly above INR 6, whatever the band"""

    def test_high_target_molto_alto_above_six(self):
        rec = evaluate_fcsa(6.3, 2.5, 3.5, 35.0)

        assert rec.band == INRBand.SOVRA_MOLTO_ALTO
        assert rec.requires_vitamin_k
        assert rec.vitamin_k.dose_mg == 2.5

    def test_critico_at_exactly_six(self):
        rec = evaluate_fcsa(6.0, 2.0, 3.0, 35.0)

        assert rec.band == INRBand.SOVRA_CRITICO
        assert not rec.requires_vitamin_k

    def test_extreme_inr_doubles_vitamin_k(self):
        rec = evaluate_fcsa(12.0, 2.0, 3.0, 35.0)
        assert rec.vitamin_k.dose_mg == 5.0

    @pytest.mark.parametrize("inr,tmin,tmax", [
        (4.5, 2.0, 3.0),
        (5.9, 2.0, 3.0),
        (6.0, 2.0, 3.0),
        (6.1, 2.0, 3.0),
        (9.0, 2.0, 3.0),
        (5.8, 2.5, 3.5),
        (6.3, 2.5, 3.5),
        (7.0, 2.5, 3.5),
        (11.0, 2.5, 3.5),
    ])
    def test_agrees_with_evaluate_vitamin_k(self, inr, tmin, tmax):
        rec = evaluate_fcsa(inr, tmin, tmax, 35.0)
        expected = evaluate_vitamin_k(inr, GuidelineKind.FCSA)

        assert rec.requires_vitamin_k == expected.is_recommended
        assert rec.vitamin_k.dose_mg == expected.dose_mg

class TestFCSAInRange:
    """Hold dose, phase-dependent interval"""

    @pytest.mark.parametrize("phase,days", [
        (TherapyPhase.INDUCTION, 7),
        (TherapyPhase.POST_ADJUSTMENT, 14),
        (TherapyPhase.MAINTENANCE, 28),
    ])
    def test_interval_by_phase(self, phase, days):
        rec = evaluate_fcsa(2.5, 2.0, 3.0, 35.0, phase=phase)

        assert rec.is_in_range
        assert rec.percentage_adjustment == 0.0
        assert rec.suggested_weekly_dose_mg == 35.0
        assert rec.next_control_days == days
        assert rec.urgency == UrgencyLevel.ROUTINE

    def test_excellent_ttr_extends_maintenance_interval(self):
        rec = evaluate_fcsa(2.5, 2.0, 3.0, 35.0, ttr_percentage=75.0)

        assert rec.next_control_days == 42
        assert "excellent" in rec.rationale

    def test_excellent_ttr_ignored_during_induction(self):
        rec = evaluate_fcsa(2.5, 2.0, 3.0, 35.0, phase=TherapyPhase.INDUCTION, ttr_percentage=90.0)
        assert rec.next_control_days == 7

    def test_unrounded_dose_kept_as_is(self):
        rec = evaluate_fcsa(2.5, 2.0, 3.0, 36.0)
        assert rec.suggested_weekly_dose_mg == 36.0
        assert rec.weekly_schedule.recurring_weekly_dose == 35.0

class TestFCSAWarnings:
    """Cross-cutting warnings"""

    def test_non_compliance(self):
        rec = evaluate_fcsa(2.5, 2.0, 3.0, 35.0, is_compliant=False)
        assert any("4D" in w for w in rec.warnings)

    def test_low_weekly_dose(self):
        rec = evaluate_fcsa(2.5, 2.0, 3.0, 12.5)
        assert any("below 15" in w for w in rec.warnings)

    def test_high_weekly_dose(self):
        rec = evaluate_fcsa(2.5, 2.0, 3.0, 45.0)
        assert any("above 40" in w for w in rec.warnings)

    def test_no_warnings_for_standard_patient(self):
        rec = evaluate_fcsa(2.5, 2.0, 3.0, 35.0)
        assert rec.warnings == []

class TestInputValidation:
    """Rejected before banding"""

    @pytest.mark.parametrize("inr,tmin,tmax,dose,code", [
        (0.0, 2.0, 3.0, 35.0, ErrorCode.INP_INR_OUT_OF_RANGE),
        (-1.0, 2.0, 3.0, 35.0, ErrorCode.INP_INR_OUT_OF_RANGE),
        (20.5, 2.0, 3.0, 35.0, ErrorCode.INP_INR_OUT_OF_RANGE),
        (2.5, 0.0, 3.0, 35.0, ErrorCode.INP_TARGET_MIN_INVALID),
        (2.5, 3.0, 2.0, 35.0, ErrorCode.INP_TARGET_RANGE_INVERTED),
        (2.5, 2.0, 2.0, 35.0, ErrorCode.INP_TARGET_RANGE_INVERTED),
        (2.5, 2.0, 5.5, 35.0, ErrorCode.INP_TARGET_RANGE_INVERTED),
        (2.5, 2.0, 3.0, 0.0, ErrorCode.INP_DOSE_OUT_OF_RANGE),
        (2.5, 2.0, 3.0, 101.0, ErrorCode.INP_DOSE_OUT_OF_RANGE),
    ])
    def test_rejections(self, inr, tmin, tmax, dose, code):
        with pytest.raises(InvalidInputError) as exc_info:
            evaluate_fcsa(inr, tmin, tmax, dose)
        assert exc_info.value.error_code == code

    def test_rejection_is_value_error(self):
        with pytest.raises(ValueError):
            evaluate_fcsa(25.0, 2.0, 3.0, 35.0)

    def test_boundary_inputs_accepted(self):
        rec = evaluate_fcsa(20.0, 2.0, 5.0, 100.0)
        assert rec.band == INRBand.SOVRA_ESTREMO

    def test_high_target_shape(self):
        rec = evaluate_fcsa(2.2, 2.5, 3.5, 35.0)
        assert rec.band == INRBand.SUB_MODERATO

"""
Anticoagulation engine facade - the in-process entry points for dosing, scheduling and TTR
"""

import logging
from datetime import date
from typing import Dict, Optional, Sequence

from . import bands
from .accp import ACCPPolicy
from .bridging import BridgeTherapyPlanner, cha2ds2_vasc_score
from .config import EngineConfig
from .fcsa import FCSAPolicy
from .policy import GuidelinePolicy
from .schedule import synthesize_weekly_schedule as _synthesize
from .schema import (
    BleedingContext, BridgeProtocol, CHA2DS2VAScFactors, DoseRecommendation, GuidelineKind,
    INRBand, INRObservation, INRStatistics, RiskInputs, SurgeryType, TargetRange,
    ThromboembolicRisk, TherapyPhase, TTRResult, WeeklyDoseSchedule
)
from .thrombotic_risk import ThromboticRiskEvaluator
from .ttr import TTRCalculator

logger = logging.getLogger(__name__)

class AnticoagulationEngine:
    """Stateless entry point; holds only configuration and the two guideline policies"""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.policies: Dict[GuidelineKind, GuidelinePolicy] = {
            GuidelineKind.FCSA: FCSAPolicy(self.config),
            GuidelineKind.ACCP: ACCPPolicy(self.config),
        }
        self.risk_evaluator = ThromboticRiskEvaluator()
        self.ttr_calculator = TTRCalculator(self.config)
        self.bridge_planner = BridgeTherapyPlanner()

    def classify_band(self, inr: float, target_min: float, target_max: float) -> INRBand:
        return bands.classify_band(inr, target_min, target_max, self.config.high_target_threshold)

    def evaluate(
        self,
        guideline: GuidelineKind,
        inr: float,
        target_min: float,
        target_max: float,
        current_weekly_dose: float,
        phase: TherapyPhase = TherapyPhase.MAINTENANCE,
        is_compliant: bool = True,
        is_slow_metabolizer: bool = False,
        bleeding: Optional[BleedingContext] = None,
        risk_inputs: Optional[RiskInputs] = None,
        ttr_percentage: Optional[float] = None,
        today: Optional[date] = None
    ) -> DoseRecommendation:
        """
        Evaluate one INR control under the chosen guideline.

        Risk inputs are reduced to a low/moderate/high tier before the policy runs;
        without them the patient is treated as low risk.
        """
        risk_level = self.risk_evaluator.risk_level(risk_inputs) if risk_inputs else ThromboembolicRisk.LOW
        return self.policies[GuidelineKind(guideline)].evaluate(
            inr=inr,
            target=TargetRange(min=target_min, max=target_max),
            current_weekly_dose=current_weekly_dose,
            phase=phase,
            is_compliant=is_compliant,
            is_slow_metabolizer=is_slow_metabolizer,
            bleeding=bleeding,
            risk_level=risk_level,
            ttr_percentage=ttr_percentage,
            today=today
        )

    def evaluate_fcsa(self, inr: float, target_min: float, target_max: float,
                      current_weekly_dose: float, **kwargs) -> DoseRecommendation:
        return self.evaluate(GuidelineKind.FCSA, inr, target_min, target_max, current_weekly_dose, **kwargs)

    def evaluate_accp(self, inr: float, target_min: float, target_max: float,
                      current_weekly_dose: float, **kwargs) -> DoseRecommendation:
        return self.evaluate(GuidelineKind.ACCP, inr, target_min, target_max, current_weekly_dose, **kwargs)

    def synthesize_weekly_schedule(self, weekly_dose: float, loading_supplement: float = 0.0,
                                   today: Optional[date] = None) -> WeeklyDoseSchedule:
        return _synthesize(weekly_dose, loading_supplement, today, self.config)

    def calculate_ttr(self, observations: Sequence[INRObservation], target_min: float, target_max: float,
                      start_date: Optional[date] = None, end_date: Optional[date] = None) -> TTRResult:
        return self.ttr_calculator.calculate(
            observations, TargetRange(min=target_min, max=target_max), start_date, end_date
        )

    def calculate_ttr_trend(self, observations: Sequence[INRObservation], target_min: float,
                            target_max: float, window_months: Optional[int] = None) -> Dict[date, float]:
        return self.ttr_calculator.calculate_trend(
            observations, TargetRange(min=target_min, max=target_max), window_months
        )

    def calculate_inr_statistics(self, observations: Sequence[INRObservation],
                                 target_min: Optional[float] = None,
                                 target_max: Optional[float] = None) -> INRStatistics:
        target = None
        if target_min is not None and target_max is not None:
            target = TargetRange(min=target_min, max=target_max)
        return self.ttr_calculator.statistics(observations, target)

    def plan_bridge(
        self,
        guideline: GuidelineKind,
        surgery_date: date,
        surgery_type: SurgeryType,
        risk_inputs: Optional[RiskInputs] = None,
        factors: Optional[CHA2DS2VAScFactors] = None
    ) -> BridgeProtocol:
        """
        Perioperative bridge plan. A CHA2DS2-VASc score computed from factors
        replaces any score already present in risk_inputs.
        """
        risk_inputs = risk_inputs or RiskInputs()
        score = risk_inputs.cha2ds2_vasc
        if factors is not None:
            score = cha2ds2_vasc_score(factors)
            risk_inputs = risk_inputs.model_copy(update={"cha2ds2_vasc": score})
        return self.bridge_planner.generate_protocol(
            guideline,
            surgery_date,
            SurgeryType(surgery_type),
            self.risk_evaluator.risk_level(risk_inputs),
            has_mechanical_valve=risk_inputs.has_mechanical_valve,
            age=factors.age if factors is not None else None,
            cha2ds2_vasc=score
        )

# Module-level functions build a default-configured engine per call
def classify_band(inr: float, target_min: float, target_max: float) -> INRBand:
    return AnticoagulationEngine().classify_band(inr, target_min, target_max)

def evaluate_fcsa(
    inr: float,
    target_min: float,
    target_max: float,
    current_weekly_dose: float,
    phase: TherapyPhase = TherapyPhase.MAINTENANCE,
    is_compliant: bool = True,
    is_slow_metabolizer: bool = False,
    bleeding: Optional[BleedingContext] = None,
    risk_inputs: Optional[RiskInputs] = None,
    ttr_percentage: Optional[float] = None,
    today: Optional[date] = None
) -> DoseRecommendation:
    return AnticoagulationEngine().evaluate(
        GuidelineKind.FCSA, inr, target_min, target_max, current_weekly_dose,
        phase, is_compliant, is_slow_metabolizer, bleeding, risk_inputs, ttr_percentage, today
    )

def evaluate_accp(
    inr: float,
    target_min: float,
    target_max: float,
    current_weekly_dose: float,
    phase: TherapyPhase = TherapyPhase.MAINTENANCE,
    is_compliant: bool = True,
    is_slow_metabolizer: bool = False,
    bleeding: Optional[BleedingContext] = None,
    risk_inputs: Optional[RiskInputs] = None,
    ttr_percentage: Optional[float] = None,
    today: Optional[date] = None
) -> DoseRecommendation:
    return AnticoagulationEngine().evaluate(
        GuidelineKind.ACCP, inr, target_min, target_max, current_weekly_dose,
        phase, is_compliant, is_slow_metabolizer, bleeding, risk_inputs, ttr_percentage, today
    )

def synthesize_weekly_schedule(weekly_dose: float, loading_supplement: float = 0.0,
                               today: Optional[date] = None) -> WeeklyDoseSchedule:
    return AnticoagulationEngine().synthesize_weekly_schedule(weekly_dose, loading_supplement, today)

def calculate_ttr(observations: Sequence[INRObservation], target_min: float, target_max: float,
                  start_date: Optional[date] = None, end_date: Optional[date] = None) -> TTRResult:
    return AnticoagulationEngine().calculate_ttr(observations, target_min, target_max, start_date, end_date)

def calculate_ttr_trend(observations: Sequence[INRObservation], target_min: float, target_max: float,
                        window_months: int = 3) -> Dict[date, float]:
    return AnticoagulationEngine().calculate_ttr_trend(observations, target_min, target_max, window_months)

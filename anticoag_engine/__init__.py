"""
Anticoagulation dosing and range-control engine.

INR banding, FCSA/ACCP dose-adjustment policies, weekly schedule synthesis,
Rosendaal TTR and perioperative bridge planning for warfarin therapy.
"""

from .accp import ACCPPolicy
from .antidotes import evaluate_vitamin_k, requires_bridging
from .bands import HIGH_TABLE, STANDARD_TABLE, classify, select_table
from .bleeding import BleedingPolicy
from .bridging import BridgeTherapyPlanner, cha2ds2_vasc_score, surgery_bleeding_risk
from .config import EngineConfig, load_config
from .engine import (
    AnticoagulationEngine, calculate_ttr, calculate_ttr_trend, classify_band,
    evaluate_accp, evaluate_fcsa, synthesize_weekly_schedule
)
from .errors import EngineError, ErrorCode, InvalidInputError, PolicyDefectError
from .fcsa import FCSAPolicy
from .nomogram import PengoNomogram
from .schema import (
    BleedingContext, BleedingRisk, BleedingSite, BleedingType, BridgeDosageType, BridgeProtocol,
    BridgeRecommendation, CHA2DS2VAScFactors, DailyDose, DoseRecommendation, GuidelineKind,
    INRBand, INRObservation, INRStatistics, NomogramEstimate, RiskInputs, SurgeryType,
    TargetRange, ThromboembolicRisk, TherapyPhase, TTRQuality, TTRResult, UrgencyLevel,
    VitaminKRecommendation, Weekday, WeeklyDoseSchedule
)
from .thrombotic_risk import ThromboticRiskEvaluator
from .ttr import TTRCalculator, calculate_inr_statistics

__version__ = "0.1.0"

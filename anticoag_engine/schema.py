"""
Pydantic schemas for the anticoagulation dosing and range-control engine
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Optional
from datetime import date
from enum import Enum

class INRBand(str, Enum):
    IN_RANGE = "in_range"
    SUB_LIEVE = "sub_lieve"
    SUB_MODERATO = "sub_moderato"
    SUB_CRITICO = "sub_critico"
    SOVRA_LIEVE = "sovra_lieve"
    SOVRA_MODERATO = "sovra_moderato"
    SOVRA_ALTO = "sovra_alto"
    SOVRA_MOLTO_ALTO = "sovra_molto_alto"
    SOVRA_CRITICO = "sovra_critico"
    SOVRA_ESTREMO = "sovra_estremo"

    @property
    def is_sub_therapeutic(self) -> bool:
        return self in SUB_BANDS

    @property
    def is_supra_therapeutic(self) -> bool:
        return self in SUPRA_BANDS

SUB_BANDS = (INRBand.SUB_LIEVE, INRBand.SUB_MODERATO, INRBand.SUB_CRITICO)
SUPRA_BANDS = (
    INRBand.SOVRA_LIEVE,
    INRBand.SOVRA_MODERATO,
    INRBand.SOVRA_ALTO,
    INRBand.SOVRA_MOLTO_ALTO,
    INRBand.SOVRA_CRITICO,
    INRBand.SOVRA_ESTREMO,
)

class TargetShape(str, Enum):
    STANDARD = "standard"  # e.g. 2.0-3.0
    HIGH = "high"          # e.g. 2.5-3.5

class GuidelineKind(str, Enum):
    FCSA = "FCSA"
    ACCP = "ACCP"

class TherapyPhase(str, Enum):
    INDUCTION = "induction"
    MAINTENANCE = "maintenance"
    POST_ADJUSTMENT = "post_adjustment"

class BleedingType(str, Enum):
    NONE = "none"
    MINOR = "minor"
    MAJOR = "major"
    LIFE_THREATENING = "life_threatening"

class BleedingSite(str, Enum):
    NONE = "none"
    CUTANEOUS = "cutaneous"
    NASAL = "nasal"
    GINGIVAL = "gingival"
    GASTROINTESTINAL = "gastrointestinal"
    URINARY = "urinary"
    INTRACRANIAL = "intracranial"
    RETROPERITONEAL = "retroperitoneal"
    OTHER = "other"

class ThromboembolicRisk(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"

class BleedingRisk(str, Enum):
    """Procedural bleeding risk of a planned surgery"""
    LOW = "low"            # 0-2%
    MODERATE = "moderate"  # 2-5%
    HIGH = "high"          # >5%

class SurgeryType(str, Enum):
    DIAGNOSTIC_ENDOSCOPY = "diagnostic_endoscopy"
    DIAGNOSTIC_COLONOSCOPY = "diagnostic_colonoscopy"
    CARDIAC_CATHETERIZATION = "cardiac_catheterization"
    TRANSESOPHAGEAL_ECHO = "transesophageal_echo"
    DERMATOLOGY_SINGLE_EXCISION = "dermatology_single_excision"
    OPHTHALMOLOGY_MINOR = "ophthalmology_minor"
    DENTAL_SINGLE_EXTRACTION = "dental_single_extraction"
    ENDOSCOPY_WITH_BIOPSY = "endoscopy_with_biopsy"
    POLYPECTOMY = "polypectomy"
    CARDIOVERSION = "cardioversion"
    PACEMAKER_IMPLANT = "pacemaker_implant"
    ARTHROSCOPY_MINOR = "arthroscopy_minor"
    LAPAROSCOPIC_CHOLECYSTECTOMY = "laparoscopic_cholecystectomy"
    TURP = "turp"
    NEUROSURGERY = "neurosurgery"
    CARDIAC_SURGERY = "cardiac_surgery"
    VASCULAR_SURGERY = "vascular_surgery"
    THORACIC_SURGERY = "thoracic_surgery"
    ABDOMINAL_SURGERY = "abdominal_surgery"
    HEPATIC_SURGERY = "hepatic_surgery"
    PANCREATIC_SURGERY = "pancreatic_surgery"
    PROSTATE_SURGERY = "prostate_surgery"
    RENAL_SURGERY = "renal_surgery"
    MAJOR_ORTHOPEDIC = "major_orthopedic"
    EPIDURAL_ANESTHESIA = "epidural_anesthesia"
    OPHTHALMOLOGY_SURGERY = "ophthalmology_surgery"
    DENTAL_MAJOR = "dental_major"
    OTHER = "other"

class BridgeDosageType(str, Enum):
    NONE = "none"
    PROPHYLACTIC = "prophylactic"
    THERAPEUTIC = "therapeutic"

class UrgencyLevel(str, Enum):
    ROUTINE = "routine"
    URGENTE = "urgente"
    EMERGENZA = "emergenza"

class TTRQuality(str, Enum):
    INSUFFICIENT = "insufficient"
    POOR = "poor"
    SUBOPTIMAL = "suboptimal"
    ACCEPTABLE = "acceptable"
    GOOD = "good"
    EXCELLENT = "excellent"

class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

class TargetRange(BaseModel):
    """Therapeutic INR interval for a patient/indication"""
    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    def contains(self, inr: float) -> bool:
        return self.min <= inr <= self.max

class INRObservation(BaseModel):
    """A single recorded INR control"""
    model_config = ConfigDict(frozen=True)

    control_date: date
    inr: float = Field(gt=0)
    weekly_dose_mg: Optional[float] = None
    is_compliant: bool = True
    phase: TherapyPhase = TherapyPhase.MAINTENANCE

class BleedingContext(BaseModel):
    """Active bleeding, if any, at the time of the control"""
    model_config = ConfigDict(frozen=True)

    type: BleedingType = BleedingType.NONE
    site: BleedingSite = BleedingSite.NONE

    @property
    def is_bleeding(self) -> bool:
        return self.type != BleedingType.NONE

class RiskInputs(BaseModel):
    """Thromboembolic risk factors supplied by the indication lookup"""
    model_config = ConfigDict(frozen=True)

    has_mechanical_valve: bool = False
    days_since_last_thromboembolism: Optional[int] = None
    cha2ds2_vasc: Optional[int] = None
    declared_risk: Optional[ThromboembolicRisk] = None

class DailyDose(BaseModel):
    """One day of a weekly schedule"""
    day: Weekday
    dose_mg: float
    description: str

class WeeklyDoseSchedule(BaseModel):
    """Seven-day administration plan derived from a weekly total"""
    total_weekly_dose: float           # recurring total plus any loading supplement
    recurring_weekly_dose: float       # sum of the seven daily doses
    daily_doses: Dict[Weekday, float]
    daily_descriptions: Dict[Weekday, str]
    description: str
    loading_dose_mg: Optional[float] = None
    loading_day: Optional[date] = None

    def dose_for(self, day: Weekday) -> float:
        return self.daily_doses.get(day, 0.0)

    def days(self) -> List[DailyDose]:
        return [
            DailyDose(day=day, dose_mg=self.dose_for(day),
                      description=self.daily_descriptions.get(day, ""))
            for day in Weekday
        ]

    def full_description(self) -> str:
        """One line per day, Monday first"""
        lines = [f"{day.value.capitalize()}: {self.daily_descriptions[day]}"
                 for day in Weekday if day in self.daily_descriptions]
        if self.loading_dose_mg:
            lines.append(f"Loading dose on {self.loading_day}: +{self.loading_dose_mg:g} mg")
        return "\n".join(lines)

    def is_valid(self) -> bool:
        if len(self.daily_doses) != 7:
            return False
        return abs(sum(self.daily_doses.values()) - self.recurring_weekly_dose) < 0.01

class VitaminKRecommendation(BaseModel):
    """Antidote advice for over-anticoagulation"""
    is_recommended: bool = False
    dose_mg: Optional[float] = None
    route: str = ""
    urgency: Optional[UrgencyLevel] = None
    notes: str = ""

class DoseRecommendation(BaseModel):
    """Structured output of a guideline evaluation"""
    guideline: GuidelineKind
    source: str
    inr: float
    target: TargetRange
    band: INRBand
    is_in_range: bool
    bleeding: BleedingContext = Field(default_factory=BleedingContext)
    high_thrombotic_risk: bool = False
    thrombotic_risk: ThromboembolicRisk = ThromboembolicRisk.LOW

    current_weekly_dose_mg: float
    suggested_weekly_dose_mg: float
    percentage_adjustment: float = 0.0
    loading_dose_mg: Optional[float] = None
    loading_dose_action: str = ""
    suspended_doses: Optional[int] = 0  # None: hold until INR/bleeding resolved

    next_control_days: int
    urgency: UrgencyLevel

    requires_ebpm: bool = False
    ebpm_details: Optional[str] = None
    vitamin_k: VitaminKRecommendation = Field(default_factory=VitaminKRecommendation)
    requires_pcc: bool = False
    pcc_dose: Optional[str] = None
    requires_plasma: bool = False
    plasma_dose: Optional[str] = None
    requires_hospitalization: bool = False

    rationale: str
    clinical_notes: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    weekly_schedule: Optional[WeeklyDoseSchedule] = None

    @property
    def requires_vitamin_k(self) -> bool:
        return self.vitamin_k.is_recommended

class INRStatistics(BaseModel):
    """Descriptive statistics over raw INR controls"""
    count: int = 0
    mean: float = 0.0
    standard_deviation: float = 0.0
    min: float = 0.0
    max: float = 0.0
    median: float = 0.0
    percentage_in_range: Optional[float] = None
    percentage_below_range: Optional[float] = None
    percentage_above_range: Optional[float] = None

QUALITY_DESCRIPTIONS = {
    TTRQuality.EXCELLENT: "Excellent (>=70%)",
    TTRQuality.GOOD: "Good (65-69%)",
    TTRQuality.ACCEPTABLE: "Acceptable (60-64%)",
    TTRQuality.SUBOPTIMAL: "Suboptimal (50-59%)",
    TTRQuality.POOR: "Poor (<50%)",
    TTRQuality.INSUFFICIENT: "Insufficient data",
}

class TTRResult(BaseModel):
    """Time in therapeutic range (Rosendaal) for an observation history"""
    ttr_percentage: float = 0.0
    total_days: int = 0
    days_in_range: int = 0
    days_below_range: int = 0
    days_above_range: int = 0
    quality: TTRQuality = TTRQuality.INSUFFICIENT
    target: TargetRange
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    number_of_controls: int = 0
    statistics: INRStatistics = Field(default_factory=INRStatistics)
    message: str = ""
    error_code: Optional[str] = None  # TTR_xxx when insufficient

    @property
    def quality_description(self) -> str:
        return QUALITY_DESCRIPTIONS[self.quality]

    @property
    def has_data(self) -> bool:
        return self.quality != TTRQuality.INSUFFICIENT

    @property
    def is_insufficient(self) -> bool:
        return self.ttr_percentage < 60.0

    @property
    def is_critical(self) -> bool:
        return self.ttr_percentage < 50.0

class NomogramEstimate(BaseModel):
    """Weekly maintenance estimate from the day-5 induction INR"""
    inr: float
    estimated_weekly_dose: float
    suggested_weekly_dose: float
    rounded_down: bool
    in_nomogram_range: bool

class CHA2DS2VAScFactors(BaseModel):
    """Atrial fibrillation stroke-risk factors"""
    model_config = ConfigDict(frozen=True)

    age: int
    is_female: bool = False
    congestive_heart_failure: bool = False
    hypertension: bool = False
    diabetes: bool = False
    stroke_tia_thromboembolism: bool = False
    vascular_disease: bool = False

class BridgeRecommendation(BaseModel):
    """Whether to bridge warfarin interruption with EBPM around a procedure"""
    guideline: GuidelineKind
    bridge_recommended: bool
    dosage_type: BridgeDosageType = BridgeDosageType.NONE
    rationale: str
    warnings: List[str] = Field(default_factory=list)

class BridgeProtocol(BaseModel):
    """Dated perioperative plan: warfarin stop/resume, EBPM window and INR checks"""
    guideline: GuidelineKind
    surgery_date: date
    surgery_type: SurgeryType
    thrombotic_risk: ThromboembolicRisk
    bleeding_risk: BleedingRisk
    cha2ds2_vasc: Optional[int] = None

    bridge_recommended: bool
    dosage_type: BridgeDosageType = BridgeDosageType.NONE
    rationale: str

    warfarin_stop_date: date
    pre_op_inr_check_date: date          # INR must be < 1.5
    ebpm_start_date: Optional[date] = None
    ebpm_last_dose_date: Optional[date] = None
    warfarin_resume_date: date
    ebpm_resume_date: Optional[date] = None
    post_op_inr_check_date: date

    ebpm_drug: Optional[str] = None
    ebpm_dosage: Optional[str] = None
    ebpm_frequency: Optional[str] = None

    comparison: str = ""                 # the other guideline's rationale
    clinical_notes: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

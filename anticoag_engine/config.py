"""
Engine configuration - numeric tunables loaded from YAML with validated defaults
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, ValidationError, model_validator

from .errors import EngineError, ErrorCode

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "engine.yaml"

class EngineConfig(BaseModel):
    """Configuration for the dosing and TTR engine"""

    # Tablet granularity (warfarin 5 mg scored tablet)
    tablet_mg: float = 5.0
    dose_step_mg: float = 2.5

    # Input validation bounds
    min_inr_exclusive: float = 0.0
    max_inr: float = 20.0
    max_target_inr: float = 5.0
    max_weekly_dose_mg: float = 100.0

    # Target shape predicate: max >= threshold selects the high boundary table
    high_target_threshold: float = 3.5

    # Dose alerts
    slow_metabolizer_threshold_mg: float = 15.0
    high_dose_threshold_mg: float = 40.0

    # TTR quality cut-points (lower bounds, percent)
    ttr_quality_thresholds: Dict[str, float] = {
        "excellent": 70.0,
        "good": 65.0,
        "acceptable": 60.0,
        "suboptimal": 50.0
    }
    ttr_rolling_window_months: int = 3
    ttr_interpolation_decimals: int = 2

    @model_validator(mode="after")
    def _check_consistency(self) -> "EngineConfig":
        if self.dose_step_mg <= 0 or self.tablet_mg <= 0:
            raise ValueError("tablet_mg and dose_step_mg must be positive")
        if self.tablet_mg % self.dose_step_mg != 0:
            raise ValueError("tablet_mg must be a multiple of dose_step_mg")
        if self.max_inr <= self.min_inr_exclusive:
            raise ValueError("max_inr must exceed min_inr_exclusive")
        if not 1 <= self.ttr_rolling_window_months <= 12:
            raise ValueError("ttr_rolling_window_months must be between 1 and 12")
        missing = {"excellent", "good", "acceptable", "suboptimal"} - set(self.ttr_quality_thresholds)
        if missing:
            raise ValueError(f"ttr_quality_thresholds missing tiers: {sorted(missing)}")
        return self

def load_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Load engine configuration from a YAML file.

    A missing file falls back to defaults; a malformed one is a configuration error.
    """
    config_file = Path(path) if path else DEFAULT_CONFIG_PATH

    if not config_file.exists():
        logger.warning(f"Config file {config_file} not found, using defaults")
        return EngineConfig()

    try:
        with open(config_file, 'r') as f:
            config_data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise EngineError(
            error_code=ErrorCode.CFG_FILE_UNREADABLE,
            message=f"Could not read engine config {config_file}",
            details={"path": str(config_file)},
            original_exception=e
        )

    if not isinstance(config_data, dict):
        raise EngineError(
            error_code=ErrorCode.CFG_INVALID_CONFIG,
            message=f"Engine config {config_file} must be a mapping",
            details={"path": str(config_file), "type": type(config_data).__name__}
        )

    try:
        config = EngineConfig(**config_data.get('engine', config_data))
    except ValidationError as e:
        raise EngineError(
            error_code=ErrorCode.CFG_INVALID_CONFIG,
            message=f"Invalid engine config {config_file}",
            details={"path": str(config_file), "errors": e.errors(include_url=False)},
            original_exception=e
        )

    logger.info(f"Engine configuration loaded from {config_file}")
    return config

"""
Thromboembolic risk evaluation from indication-level risk factors
"""

import logging

from .errors import ErrorCode, invalid_input
from .schema import RiskInputs, ThromboembolicRisk

logger = logging.getLogger(__name__)

class ThromboticRiskEvaluator:
    """Derives the thromboembolic risk tier used for EBPM bridging decisions"""

    RECENT_EVENT_DAYS = 90
    PRIOR_EVENT_DAYS = 365
    HIGH_CHA2DS2_VASC = 4
    MODERATE_CHA2DS2_VASC = 2

    def _validate(self, inputs: RiskInputs) -> None:
        if inputs.days_since_last_thromboembolism is not None and inputs.days_since_last_thromboembolism < 0:
            raise invalid_input(
                ErrorCode.INP_RISK_INPUT_INVALID,
                "Days since last thromboembolism cannot be negative",
                days_since_last_thromboembolism=inputs.days_since_last_thromboembolism
            )
        if inputs.cha2ds2_vasc is not None and inputs.cha2ds2_vasc < 0:
            raise invalid_input(
                ErrorCode.INP_RISK_INPUT_INVALID,
                "CHA2DS2-VASc score cannot be negative",
                cha2ds2_vasc=inputs.cha2ds2_vasc
            )

    def is_high_risk(self, inputs: RiskInputs) -> bool:
        self._validate(inputs)

        if inputs.has_mechanical_valve:
            return True
        days = inputs.days_since_last_thromboembolism
        if days is not None and days < self.RECENT_EVENT_DAYS:
            return True
        if inputs.cha2ds2_vasc is not None and inputs.cha2ds2_vasc >= self.HIGH_CHA2DS2_VASC:
            return True
        return inputs.declared_risk == ThromboembolicRisk.HIGH

    def risk_level(self, inputs: RiskInputs) -> ThromboembolicRisk:
        """Three-tier risk; high takes precedence over any moderate factor"""
        if self.is_high_risk(inputs):
            return ThromboembolicRisk.HIGH

        days = inputs.days_since_last_thromboembolism
        score = inputs.cha2ds2_vasc
        if days is not None and days < self.PRIOR_EVENT_DAYS:
            return ThromboembolicRisk.MODERATE
        if score is not None and self.MODERATE_CHA2DS2_VASC <= score < self.HIGH_CHA2DS2_VASC:
            return ThromboembolicRisk.MODERATE
        if inputs.declared_risk == ThromboembolicRisk.MODERATE:
            return ThromboembolicRisk.MODERATE
        return ThromboembolicRisk.LOW

"""
Error code system for the anticoagulation engine.
Provides specific, auditable error codes for rejected inputs and configuration problems.
"""

from enum import Enum
from typing import Dict, Any, Optional
import logging
from datetime import datetime, timezone
import json
import uuid

class ErrorCode(Enum):
    """Specific error codes for engine components"""

    # Input validation errors (INP_xxx)
    INP_INR_OUT_OF_RANGE = "INP_001"
    INP_TARGET_MIN_INVALID = "INP_002"
    INP_TARGET_RANGE_INVERTED = "INP_003"
    INP_DOSE_OUT_OF_RANGE = "INP_004"
    INP_LOADING_DOSE_NEGATIVE = "INP_005"
    INP_RISK_INPUT_INVALID = "INP_006"
    INP_WINDOW_MONTHS_INVALID = "INP_007"
    INP_OBSERVATION_INVALID = "INP_008"
    INP_PATIENT_INPUT_INVALID = "INP_009"

    # TTR conditions (TTR_xxx)
    TTR_INSUFFICIENT_DATA = "TTR_001"
    TTR_EMPTY_WINDOW = "TTR_002"

    # Guideline policy defects (POL_xxx)
    POL_UNHANDLED_BAND = "POL_001"

    # Configuration errors (CFG_xxx)
    CFG_INVALID_CONFIG = "CFG_001"
    CFG_FILE_UNREADABLE = "CFG_002"

ERROR_CODE_DESCRIPTIONS = {
    ErrorCode.INP_INR_OUT_OF_RANGE: "INR outside the physiological range",
    ErrorCode.INP_TARGET_MIN_INVALID: "Target INR minimum not positive or above maximum",
    ErrorCode.INP_TARGET_RANGE_INVERTED: "Target range degenerate or inverted",
    ErrorCode.INP_DOSE_OUT_OF_RANGE: "Weekly dose not positive or above maximum",
    ErrorCode.INP_LOADING_DOSE_NEGATIVE: "Loading supplement is negative",
    ErrorCode.INP_RISK_INPUT_INVALID: "Thromboembolic risk factor out of range",
    ErrorCode.INP_WINDOW_MONTHS_INVALID: "TTR trend window outside 1-12 months",
    ErrorCode.INP_OBSERVATION_INVALID: "INR control history unreadable or invalid",
    ErrorCode.INP_PATIENT_INPUT_INVALID: "Patient parameters out of range",
    ErrorCode.TTR_INSUFFICIENT_DATA: "Fewer than two INR controls available",
    ErrorCode.TTR_EMPTY_WINDOW: "TTR window empty or inverted",
    ErrorCode.POL_UNHANDLED_BAND: "Guideline table missing an INR band",
    ErrorCode.CFG_INVALID_CONFIG: "Engine configuration failed validation",
    ErrorCode.CFG_FILE_UNREADABLE: "Engine configuration file unreadable",
}

def get_error_description(error_code: ErrorCode) -> str:
    """Get human-readable description for error code"""
    return ERROR_CODE_DESCRIPTIONS.get(error_code, "Unknown error")

class EngineError(Exception):
    """Base exception class for the engine with specific error codes"""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.trace_id = str(uuid.uuid4())[:8]

        super().__init__(f"[{error_code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/CLI output"""
        return {
            "error_code": self.error_code.value,
            "description": get_error_description(self.error_code),
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
            "trace_id": self.trace_id,
            "original_error": str(self.original_exception) if self.original_exception else None
        }

    def to_json(self) -> str:
        """Convert error to JSON string"""
        return json.dumps(self.to_dict(), indent=2, default=str)

class InvalidInputError(EngineError, ValueError):
    """Caller supplied a value outside the accepted clinical bounds"""

class PolicyDefectError(EngineError):
    """A guideline table has no entry for a band; always a programming error"""

class ErrorLogger:
    """Centralized error logging with structured output"""

    def __init__(self, logger_name: str = "anticoag_engine"):
        self.logger = logging.getLogger(logger_name)

    def log_error(self, error: EngineError, level: int = logging.ERROR):
        """Log error with structured format"""
        self.logger.log(
            level,
            f"ENGINE_ERROR: {error.error_code.value} - {error.message}",
            extra={
                "error_code": error.error_code.value,
                "trace_id": error.trace_id,
                "details": error.details,
                "timestamp": error.timestamp
            }
        )

        if error.original_exception:
            self.logger.debug(
                f"Original exception for {error.trace_id}:",
                exc_info=error.original_exception
            )

def invalid_input(error_code: ErrorCode, message: str, **details: Any) -> InvalidInputError:
    """Build a rejection and log it at WARNING level"""
    error = InvalidInputError(error_code=error_code, message=message, details=details)
    ErrorLogger().log_error(error, level=logging.WARNING)
    return error

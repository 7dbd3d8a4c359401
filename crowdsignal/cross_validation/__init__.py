"""Cross-community validation of ticker signals."""

from crowdsignal.cross_validation.config import (
    DEFAULT_CROSS_VALIDATION_CONFIG,
    CrossValidationConfig,
)
from crowdsignal.cross_validation.engine import (
    CommunityValidation,
    CrossValidationEngine,
    CrossValidationResult,
    ValidationReason,
)

__all__ = [
    "DEFAULT_CROSS_VALIDATION_CONFIG",
    "CrossValidationConfig",
    "CommunityValidation",
    "CrossValidationEngine",
    "CrossValidationResult",
    "ValidationReason",
]

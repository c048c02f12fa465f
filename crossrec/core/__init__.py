"""
Core types, constants and errors for crossrec.
"""

from crossrec.core.constants import ServiceId, ALL_SERVICES, NUM_SERVICES
from crossrec.core.exceptions import (
    CrossRecError,
    NotInitializedError,
    InvalidTrainingDataError,
    SingularMatrixError,
)
from crossrec.core.types import (
    UserFeatures,
    RecommendationItem,
    RecommendationResult,
    RecommendationStrategy,
    to_service_id,
)

__all__ = [
    "ServiceId",
    "ALL_SERVICES",
    "NUM_SERVICES",
    "CrossRecError",
    "NotInitializedError",
    "InvalidTrainingDataError",
    "SingularMatrixError",
    "UserFeatures",
    "RecommendationItem",
    "RecommendationResult",
    "RecommendationStrategy",
    "to_service_id",
]

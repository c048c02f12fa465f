"""
crossrec - Cross-Service Recommendation Engine

Recommends items in any product surface ("service") from a user's feature
vectors in whichever services they have used, including services they
have never touched.

Key Features:
- Multi-gate mixture-of-experts (MMoE) shared across services
- EMCDR cross-domain mapping learned by closed-form ridge regression
- Strategy selection with direct, cross-domain and fallback paths
- Memory-based collaborative filtering with time decay
"""

__version__ = "0.1.0"

from crossrec.core.constants import ServiceId, ALL_SERVICES
from crossrec.core.exceptions import (
    CrossRecError,
    NotInitializedError,
    InvalidTrainingDataError,
)
from crossrec.core.types import (
    UserFeatures,
    RecommendationItem,
    RecommendationResult,
    RecommendationStrategy,
)
from crossrec.config.params import EngineConfig
from crossrec.recommendation.engine import RecommendationEngine, create_engine
from crossrec.transfer.mapping import CrossDomainMapper, MappingRegistry, OverlapUser

__all__ = [
    # Core
    "ServiceId",
    "ALL_SERVICES",
    "UserFeatures",
    "RecommendationItem",
    "RecommendationResult",
    "RecommendationStrategy",
    # Errors
    "CrossRecError",
    "NotInitializedError",
    "InvalidTrainingDataError",
    # Engine
    "EngineConfig",
    "RecommendationEngine",
    "create_engine",
    # Transfer
    "CrossDomainMapper",
    "MappingRegistry",
    "OverlapUser",
]

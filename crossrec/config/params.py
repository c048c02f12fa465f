"""
Parameter Pydantic models for crossrec.

Validated configuration for the recommendation engine and the
collaborative-filtering recommender.
"""

from typing import Literal

from pydantic import BaseModel, Field

from crossrec.core.constants import (
    DEFAULT_FEATURE_DIM_PER_SERVICE,
    DEFAULT_EXPERT_OUTPUT_DIM,
    DEFAULT_RIDGE_LAMBDA,
    DEFAULT_LIMIT,
    CANDIDATE_MULTIPLIER,
    MIN_CANDIDATES,
    NUM_SERVICES,
    CF_DEFAULT_K,
    CF_DEFAULT_MIN_OVERLAP,
    CF_DEFAULT_DECAY_FACTOR,
)


class EngineConfig(BaseModel):
    """Recommendation engine parameters."""

    feature_dim_per_service: int = Field(
        default=DEFAULT_FEATURE_DIM_PER_SERVICE,
        gt=0,
        description="Width of each service's segment in the model input"
    )
    expert_output_dim: int = Field(
        default=DEFAULT_EXPERT_OUTPUT_DIM,
        gt=0,
        description="Output dimension shared by all experts"
    )
    ridge_lambda: float = Field(
        default=DEFAULT_RIDGE_LAMBDA,
        ge=0,
        description="λ for cross-domain ridge regression"
    )
    default_limit: int = Field(
        default=DEFAULT_LIMIT,
        gt=0,
        description="Items returned when the caller gives no limit"
    )
    candidate_multiplier: int = Field(
        default=CANDIDATE_MULTIPLIER,
        ge=1,
        description="Candidate pool is limit × multiplier (at least min_candidates)"
    )
    min_candidates: int = Field(
        default=MIN_CANDIDATES,
        ge=1,
        description="Lower bound on the candidate pool size"
    )

    model_config = {"extra": "forbid"}

    @property
    def input_dim(self) -> int:
        """Length of the concatenated model input."""
        return self.feature_dim_per_service * NUM_SERVICES

    def candidate_count(self, limit: int) -> int:
        """Number of candidates to score for a given result limit."""
        return max(limit * self.candidate_multiplier, self.min_candidates)


class CollaborativeFilteringParams(BaseModel):
    """Memory-based collaborative filtering parameters."""

    method: Literal["user-based", "item-based"] = Field(
        default="user-based",
        description="Neighborhood over users or over items"
    )
    k: int = Field(
        default=CF_DEFAULT_K,
        gt=0,
        description="Number of nearest neighbors to consider"
    )
    min_overlap: int = Field(
        default=CF_DEFAULT_MIN_OVERLAP,
        ge=0,
        description="Minimum co-rated keys required before computing similarity"
    )
    decay_factor: float = Field(
        default=CF_DEFAULT_DECAY_FACTOR,
        gt=0,
        le=1.0,
        description="Exponential time decay per day (1 = no decay)"
    )

    model_config = {"extra": "forbid"}

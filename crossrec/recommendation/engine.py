"""
Recommendation generation: main entry point.

Combines MMoE multi-task learning with EMCDR cross-domain mapping to
recommend items in any target service, including one the user has never
used.

Strategy selection:
    1. direct:       user has target-service data → MMoE on real features
    2. cross_domain: user has other service data → augmentation + MMoE
    3. fallback:     user has no data → static popularity list
"""

import logging
from typing import Any, Dict, Optional, Sequence, Union

from crossrec.config.params import EngineConfig
from crossrec.config.settings import Settings, get_settings
from crossrec.core.constants import ServiceId
from crossrec.core.exceptions import NotInitializedError
from crossrec.core.types import (
    UserFeatures,
    RecommendationResult,
    RecommendationStrategy,
    ServiceLike,
    to_service_id,
)
from crossrec.model.mmoe import MMoEModel, MMoETaskOutput, build_input_vector
from crossrec.recommendation.scoring import (
    ItemEmbeddingSource,
    DeterministicItemSource,
    score_candidates,
    rank_items,
    uniform_gate_weights,
    generate_fallback_items,
)
from crossrec.transfer.augmentation import augment_features
from crossrec.transfer.mapping import (
    CrossDomainMapper,
    MappingRegistry,
    OverlapUser,
    ServiceMapping,
)

logger = logging.getLogger(__name__)


# Accepted spellings for init_engine options
_CONFIG_ALIASES = {
    "featureDimPerService": "feature_dim_per_service",
    "expertOutputDim": "expert_output_dim",
}


def select_strategy(
    features: UserFeatures,
    target_service: ServiceLike
) -> RecommendationStrategy:
    """
    Decide how to build recommendations for a user/target pair.

    Args:
        features: User features
        target_service: Service to recommend for

    Returns:
        DIRECT if the user is active in the target service, CROSS_DOMAIN
        if active elsewhere, FALLBACK if not active anywhere
    """
    target = to_service_id(target_service)
    if target in features.active_services:
        return RecommendationStrategy.DIRECT
    if features.active_services:
        return RecommendationStrategy.CROSS_DOMAIN
    return RecommendationStrategy.FALLBACK


def _coerce_config(
    config: Union[EngineConfig, Dict[str, Any], None],
    settings: Settings,
    overrides: Dict[str, Any]
) -> EngineConfig:
    if isinstance(config, EngineConfig):
        values = config.model_dump()
    else:
        values = settings.to_engine_config().model_dump()
        for key, value in (config or {}).items():
            values[_CONFIG_ALIASES.get(key, key)] = value
    for key, value in overrides.items():
        values[_CONFIG_ALIASES.get(key, key)] = value
    return EngineConfig(**values)


class RecommendationEngine:
    """
    Cross-service recommendation engine.

    An engine is an explicit context: it owns the MMoE model and the
    mapping registry. Build one, call :meth:`init_engine` once, then share
    it between callers. Experts and gates are read-only after
    initialization; the registry tolerates concurrent readers and writers.

    Example:
        engine = RecommendationEngine().init_engine(feature_dim_per_service=8)
        result = engine.get_recommendations(features, "planner", limit=5)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[MappingRegistry] = None,
        item_source: Optional[ItemEmbeddingSource] = None
    ):
        """
        Create an uninitialized engine.

        Args:
            settings: Defaults for init_engine (global settings if None)
            registry: Mapping registry to own (a new one if None)
            item_source: Candidate item source (deterministic placeholder if None)
        """
        self.settings = settings or get_settings()
        self.item_source = item_source or DeterministicItemSource()
        self.config: Optional[EngineConfig] = None
        self._model: Optional[MMoEModel] = None
        self._mapper = CrossDomainMapper(
            registry=registry,
            ridge_lambda=self.settings.ridge_lambda,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def init_engine(
        self,
        config: Union[EngineConfig, Dict[str, Any], None] = None,
        **overrides
    ) -> "RecommendationEngine":
        """
        Build the model and seed identity mappings for every service pair.

        Args:
            config: EngineConfig or dict of options (settings defaults if None)
            **overrides: Individual options, e.g. feature_dim_per_service=8

        Returns:
            self, for chaining

        Raises:
            pydantic.ValidationError: If an option is unknown or out of range
        """
        cfg = _coerce_config(config, self.settings, overrides)

        self._model = MMoEModel(
            input_dim=cfg.input_dim,
            expert_output_dim=cfg.expert_output_dim,
        )
        self._mapper.ridge_lambda = cfg.ridge_lambda
        self._mapper.initialize_all_mappings(cfg.feature_dim_per_service)
        self.config = cfg

        logger.info(
            "Recommendation engine initialized: feature_dim_per_service=%d "
            "expert_output_dim=%d input_dim=%d",
            cfg.feature_dim_per_service, cfg.expert_output_dim, cfg.input_dim,
        )
        return self

    def reset_engine(self) -> None:
        """
        Discard the model, the configuration and every mapping.

        The owned registry is cleared in place, so a registry passed to
        the constructor stays connected to this engine.
        """
        self._model = None
        self.config = None
        self._mapper.reset()
        self._mapper.ridge_lambda = self.settings.ridge_lambda

    @property
    def is_initialized(self) -> bool:
        return self._model is not None

    @property
    def model(self) -> MMoEModel:
        return self._require_model()

    @property
    def mapper(self) -> CrossDomainMapper:
        return self._mapper

    def _require_model(self) -> MMoEModel:
        if self._model is None:
            raise NotInitializedError()
        return self._model

    # -------------------------------------------------------------------------
    # Cross-domain mapping
    # -------------------------------------------------------------------------

    def update_mapping_weights(
        self,
        source_service: ServiceLike,
        target_service: ServiceLike,
        overlap_users: Sequence[OverlapUser],
        lam: Optional[float] = None
    ) -> ServiceMapping:
        """Learn a mapping from overlap users. See CrossDomainMapper."""
        return self._mapper.update_mapping_weights(
            source_service, target_service, overlap_users, lam
        )

    # -------------------------------------------------------------------------
    # Recommendations
    # -------------------------------------------------------------------------

    def forward_all_tasks(
        self,
        features: UserFeatures,
        feature_dim_per_service: Optional[int] = None
    ) -> Dict[ServiceId, MMoETaskOutput]:
        """
        Run every task for one user with a single expert pass.

        Missing services are augmented first when the user has any data.
        """
        model = self._require_model()
        dim = feature_dim_per_service or self.config.feature_dim_per_service
        if features.active_services:
            features = augment_features(features, self._mapper)
        return model.forward_all(build_input_vector(features, dim))

    def get_recommendations(
        self,
        features: UserFeatures,
        target_service: ServiceLike,
        limit: Optional[int] = None,
        feature_dim_per_service: Optional[int] = None
    ) -> RecommendationResult:
        """
        Generate ranked recommendations for a user in a target service.

        Args:
            features: User's per-service feature vectors
            target_service: Service to recommend for
            limit: Maximum number of items (configured default if None)
            feature_dim_per_service: Segment width (configured value if None)

        Returns:
            RecommendationResult, items sorted by score descending

        Raises:
            NotInitializedError: If init_engine() has not been called
        """
        model = self._require_model()
        target = to_service_id(target_service)
        limit = self.config.default_limit if limit is None else limit
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        dim = feature_dim_per_service or self.config.feature_dim_per_service

        strategy = select_strategy(features, target)
        logger.debug(
            "User %s → %s: strategy=%s active=%s",
            features.user_id, target.value, strategy.value,
            [s.value for s in features.active_services],
        )

        if strategy == RecommendationStrategy.FALLBACK:
            return RecommendationResult(
                user_id=features.user_id,
                target_service=target,
                items=generate_fallback_items(limit),
                gate_weights=uniform_gate_weights(),
                strategy=strategy,
            )

        effective = features
        if strategy == RecommendationStrategy.CROSS_DOMAIN:
            effective = augment_features(features, self._mapper)

        task_output = model.forward_task(build_input_vector(effective, dim), target)

        candidates = self.item_source.candidates(
            target, model.expert_output_dim, self.config.candidate_count(limit)
        )
        items = rank_items(
            score_candidates(task_output.output, candidates),
            task_output.gate_weights,
            limit,
        )

        return RecommendationResult(
            user_id=features.user_id,
            target_service=target,
            items=items,
            gate_weights=dict(task_output.gate_weights),
            strategy=strategy,
        )


def create_engine(
    config: Union[EngineConfig, Dict[str, Any], None] = None,
    **overrides
) -> RecommendationEngine:
    """
    Build and initialize a new engine.

    A fresh engine replaces any need for a global reset.
    """
    return RecommendationEngine().init_engine(config, **overrides)

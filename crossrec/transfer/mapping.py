"""
Cross-domain mapping (EMCDR framework).

Maps a user's profile from one service's embedding space into another's
with a learned linear transform:

    û^target = W · u^source

W is learned from overlap users, who are active in both services, by
ridge regression:

    min_W Σ_{u ∈ overlap} ||W · x_u − y_u||² + λ·n·||W||²

Closed form, one row per target dimension, all sharing one inversion:

    w_i = (XᵗX + λnI)⁻¹ · Xᵗy_i
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from crossrec.core.constants import (
    ServiceId,
    ALL_SERVICES,
    DEFAULT_RIDGE_LAMBDA,
    SINGULAR_PIVOT_THRESHOLD,
)
from crossrec.core.exceptions import InvalidTrainingDataError, SingularMatrixError
from crossrec.core.types import ServiceLike, to_service_id
from crossrec.utils.math_utils import fit_length, identity_matrix, invert_matrix

logger = logging.getLogger(__name__)


MappingKey = Tuple[ServiceId, ServiceId]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class OverlapUser:
    """A user with embeddings in both the source and the target service."""
    user_id: str
    source_embedding: List[float]
    target_embedding: List[float]


@dataclass(frozen=True, eq=False)
class ServiceMapping:
    """
    Linear map from one service's embedding space to another's.

    Instances are immutable: ``weights`` is a read-only array and a
    learning step produces a new ServiceMapping rather than editing one.
    """
    source_service: ServiceId
    target_service: ServiceId
    weights: np.ndarray  # target_dim × source_dim
    degraded: bool = False
    sample_count: int = 0
    regularization: float = 0.0
    updated_at: str = field(default_factory=_utc_now)

    def __post_init__(self):
        arr = np.array(self.weights, dtype=float)
        if arr.ndim != 2:
            raise ValueError(f"Mapping weights must be 2-D, got shape {arr.shape}")
        arr.setflags(write=False)
        object.__setattr__(self, "weights", arr)

    @property
    def key(self) -> MappingKey:
        return (self.source_service, self.target_service)

    @property
    def source_dim(self) -> int:
        return self.weights.shape[1]

    @property
    def target_dim(self) -> int:
        return self.weights.shape[0]

    def apply(self, profile: Sequence[float]) -> List[float]:
        """W · profile, with the profile padded/truncated to source_dim."""
        return (self.weights @ fit_length(profile, self.source_dim)).tolist()

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            "_id": f"{self.source_service.value}→{self.target_service.value}",
            "source_service": self.source_service.value,
            "target_service": self.target_service.value,
            "weights": self.weights.tolist(),
            "degraded": self.degraded,
            "sample_count": self.sample_count,
            "regularization": self.regularization,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ServiceMapping":
        """Create from dictionary."""
        return cls(
            source_service=to_service_id(data["source_service"]),
            target_service=to_service_id(data["target_service"]),
            weights=data["weights"],
            degraded=data.get("degraded", False),
            sample_count=data.get("sample_count", 0),
            regularization=data.get("regularization", 0.0),
            updated_at=data.get("updated_at", ""),
        )


class MappingRegistry:
    """
    Thread-safe store of ServiceMapping values keyed by (source, target).

    Writers replace an entry with a complete new mapping under a lock;
    readers only ever see whole mappings, never a partially written matrix.
    """

    def __init__(self):
        self._mappings: Dict[MappingKey, ServiceMapping] = {}
        self._lock = threading.RLock()

    def get(self, source: ServiceId, target: ServiceId) -> Optional[ServiceMapping]:
        with self._lock:
            return self._mappings.get((source, target))

    def put(self, mapping: ServiceMapping) -> None:
        """Atomically install (or replace) a mapping."""
        with self._lock:
            self._mappings[mapping.key] = mapping

    def remove(self, source: ServiceId, target: ServiceId) -> bool:
        with self._lock:
            return self._mappings.pop((source, target), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._mappings.clear()

    def snapshot(self) -> Dict[MappingKey, ServiceMapping]:
        """Point-in-time copy of every registered mapping."""
        with self._lock:
            return dict(self._mappings)

    def __contains__(self, key: MappingKey) -> bool:
        with self._lock:
            return key in self._mappings

    def __len__(self) -> int:
        with self._lock:
            return len(self._mappings)


class CrossDomainMapper:
    """
    Maintains and applies linear projections between services.

    The mapper owns no global state: each instance works against the
    MappingRegistry it was given (or a private one).
    """

    def __init__(
        self,
        registry: Optional[MappingRegistry] = None,
        ridge_lambda: float = DEFAULT_RIDGE_LAMBDA,
        pivot_threshold: float = SINGULAR_PIVOT_THRESHOLD
    ):
        """
        Initialize the mapper.

        Args:
            registry: Mapping store (a new empty one if None)
            ridge_lambda: Default regularization for learning
            pivot_threshold: Pivot magnitude treated as singular
        """
        self.registry = registry if registry is not None else MappingRegistry()
        self.ridge_lambda = ridge_lambda
        self.pivot_threshold = pivot_threshold

    # -------------------------------------------------------------------------
    # Projection
    # -------------------------------------------------------------------------

    def map_user_profile(
        self,
        source_service: ServiceLike,
        target_service: ServiceLike,
        source_profile: Sequence[float]
    ) -> List[float]:
        """
        Map a user's profile from one service to another.

        û^target = W · u^source

        Args:
            source_service: Service where the profile was observed
            target_service: Service to project into
            source_profile: Embedding in the source service

        Returns:
            A new list: a copy when source == target or when no mapping
            is registered, otherwise the projected embedding
        """
        source = to_service_id(source_service)
        target = to_service_id(target_service)

        if source == target:
            return [float(v) for v in source_profile]

        mapping = self.registry.get(source, target)
        if mapping is None:
            logger.debug("No mapping %s→%s; returning profile unchanged", source.value, target.value)
            return [float(v) for v in source_profile]

        return mapping.apply(source_profile)

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    def initialize_mapping(
        self,
        source_service: ServiceLike,
        target_service: ServiceLike,
        dim: int,
        source_dim: Optional[int] = None
    ) -> ServiceMapping:
        """
        Register an identity mapping between two services.

        Args:
            source_service: Source service
            target_service: Target service
            dim: Target dimension
            source_dim: Source dimension (defaults to ``dim``); the
                identity is zero-padded or truncated when they differ

        Returns:
            The registered ServiceMapping
        """
        mapping = ServiceMapping(
            source_service=to_service_id(source_service),
            target_service=to_service_id(target_service),
            weights=identity_matrix(dim, source_dim if source_dim is not None else dim),
        )
        self.registry.put(mapping)
        return mapping

    def initialize_all_mappings(
        self,
        dim: int,
        services: Iterable[ServiceId] = ALL_SERVICES
    ) -> int:
        """
        Register identity mappings for every ordered pair of distinct services.

        Returns:
            Number of mappings registered
        """
        services = list(services)
        count = 0
        for source in services:
            for target in services:
                if source != target:
                    self.initialize_mapping(source, target, dim)
                    count += 1
        logger.debug("Initialized %d identity mappings (dim=%d)", count, dim)
        return count

    # -------------------------------------------------------------------------
    # Learning (ridge regression)
    # -------------------------------------------------------------------------

    def update_mapping_weights(
        self,
        source_service: ServiceLike,
        target_service: ServiceLike,
        overlap_users: Sequence[OverlapUser],
        lam: Optional[float] = None
    ) -> ServiceMapping:
        """
        Learn the mapping W from overlap users and install it.

        Builds XᵗX once, adds λn to its diagonal, inverts it once, then
        computes every row w_i = (XᵗX + λnI)⁻¹ · Xᵗy_i from that inverse.
        Dimensions come from the first overlap user; other users' vectors
        are padded/truncated to match.

        If the system is numerically singular the inverse falls back to
        the identity, the mapping is flagged ``degraded`` and a warning is
        logged. No NaNs are produced.

        Args:
            source_service: Source service
            target_service: Target service
            overlap_users: Users observed in both services
            lam: Regularization strength (mapper default if None)

        Returns:
            The newly installed ServiceMapping

        Raises:
            InvalidTrainingDataError: If overlap_users is empty
        """
        source = to_service_id(source_service)
        target = to_service_id(target_service)
        lam = self.ridge_lambda if lam is None else lam

        if len(overlap_users) == 0:
            raise InvalidTrainingDataError(
                "need at least one overlap user to learn mapping",
                source_service=source,
                target_service=target,
            )

        n = len(overlap_users)
        source_dim = len(overlap_users[0].source_embedding)
        target_dim = len(overlap_users[0].target_embedding)

        X = np.vstack([fit_length(u.source_embedding, source_dim) for u in overlap_users])
        Y = np.vstack([fit_length(u.target_embedding, target_dim) for u in overlap_users])

        # XᵗX + λnI
        xtx = X.T @ X
        xtx[np.diag_indices(source_dim)] += lam * n

        degraded = False
        try:
            xtx_inv = invert_matrix(xtx, self.pivot_threshold)
        except SingularMatrixError as e:
            logger.warning(
                "Singular system learning %s→%s from %d users (λ=%g): %s; "
                "falling back to identity inverse",
                source.value, target.value, n, lam, e,
            )
            xtx_inv = np.eye(source_dim)
            degraded = True

        # Row i: w_i = (XᵗX + λnI)⁻¹ · Xᵗy_i
        xty = X.T @ Y  # source_dim × target_dim, column i is Xᵗy_i
        weights = (xtx_inv @ xty).T

        mapping = ServiceMapping(
            source_service=source,
            target_service=target,
            weights=weights,
            degraded=degraded,
            sample_count=n,
            regularization=lam,
        )
        self.registry.put(mapping)

        logger.info(
            "Learned mapping %s→%s from %d overlap users (%dx%d, λ=%g%s)",
            source.value, target.value, n, target_dim, source_dim, lam,
            ", degraded" if degraded else "",
        )
        return mapping

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def get_mapping(
        self,
        source_service: ServiceLike,
        target_service: ServiceLike
    ) -> Optional[ServiceMapping]:
        return self.registry.get(to_service_id(source_service), to_service_id(target_service))

    def reset(self) -> None:
        """Drop every registered mapping."""
        self.registry.clear()

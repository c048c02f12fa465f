"""
Shared data types for crossrec.

UserFeatures flows into the engine; RecommendationItem and
RecommendationResult flow out of it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Union

from crossrec.core.constants import ServiceId


ServiceLike = Union[ServiceId, str]


def to_service_id(value: ServiceLike) -> ServiceId:
    """
    Coerce a service identifier.

    Raises:
        ValueError: If the value is not a known service
    """
    if isinstance(value, ServiceId):
        return value
    try:
        return ServiceId(value)
    except ValueError:
        known = ", ".join(s.value for s in ServiceId)
        raise ValueError(f"Unknown service '{value}' (known: {known})") from None


class RecommendationStrategy(str, Enum):
    """How a recommendation result was produced."""
    DIRECT = "direct"
    CROSS_DOMAIN = "cross_domain"
    FALLBACK = "fallback"


@dataclass
class UserFeatures:
    """
    A user's per-service feature vectors.

    Only services listed in ``active_services`` hold observed data.
    Vectors synthesized by feature augmentation are written into
    ``service_features`` but never added to ``active_services``.
    """
    user_id: str
    active_services: List[ServiceId] = field(default_factory=list)
    service_features: Dict[ServiceId, List[float]] = field(default_factory=dict)

    def __post_init__(self):
        self.active_services = [to_service_id(s) for s in self.active_services]
        self.service_features = {
            to_service_id(s): list(vec) for s, vec in self.service_features.items()
        }

    def copy(self) -> "UserFeatures":
        """Copy with independent lists."""
        return UserFeatures(
            user_id=self.user_id,
            active_services=list(self.active_services),
            service_features={s: list(v) for s, v in self.service_features.items()},
        )

    def missing_services(self, services) -> List[ServiceId]:
        """Services in ``services`` without any feature vector."""
        return [s for s in services if s not in self.service_features]

    @classmethod
    def from_dict(cls, data: Dict) -> "UserFeatures":
        """Create from dictionary (camelCase or snake_case keys)."""
        return cls(
            user_id=data.get("user_id", data.get("userId", "")),
            active_services=data.get("active_services", data.get("activeServices", [])),
            service_features=data.get("service_features", data.get("serviceFeatures", {})),
        )


@dataclass
class RecommendationItem:
    """A single scored item."""
    item_id: str
    score: float
    expert_contributions: Dict[ServiceId, float] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "item_id": self.item_id,
            "score": self.score,
            "expert_contributions": {
                s.value: w for s, w in self.expert_contributions.items()
            },
        }


@dataclass
class RecommendationResult:
    """Ranked recommendations for one user in one target service."""
    user_id: str
    target_service: ServiceId
    items: List[RecommendationItem]
    gate_weights: Dict[ServiceId, float]
    strategy: RecommendationStrategy

    @property
    def item_ids(self) -> List[str]:
        """Item IDs in rank order."""
        return [item.item_id for item in self.items]

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "target_service": self.target_service.value,
            "items": [item.to_dict() for item in self.items],
            "gate_weights": {s.value: w for s, w in self.gate_weights.items()},
            "strategy": self.strategy.value,
        }

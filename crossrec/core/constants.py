"""
System constants for crossrec.

Multi-gate mixture-of-experts with EMCDR cross-domain mapping.
"""

from enum import Enum
from typing import Tuple


class ServiceId(str, Enum):
    """Known product surfaces, in canonical order."""
    BRAIN = "brain"
    PLANNER = "planner"
    PLACE = "place"
    STORE = "store"
    CAFE = "cafe"


# Canonical order: feature segments are concatenated in this order and
# gate outputs are indexed by it.
ALL_SERVICES: Tuple[ServiceId, ...] = tuple(ServiceId)

NUM_SERVICES: int = len(ALL_SERVICES)

# =============================================================================
# Model Dimensions
# =============================================================================

# Width of each service's segment in the concatenated input vector
DEFAULT_FEATURE_DIM_PER_SERVICE: int = 8

# Dimension of every expert's output (shared so the mixture sum is defined)
DEFAULT_EXPERT_OUTPUT_DIM: int = 16

# =============================================================================
# Cross-Domain Mapping
# =============================================================================

# Ridge regularization strength λ (scaled by the number of overlap users)
DEFAULT_RIDGE_LAMBDA: float = 0.01

# Pivots smaller than this are treated as zero during Gauss-Jordan inversion
SINGULAR_PIVOT_THRESHOLD: float = 1e-12

# =============================================================================
# Ranking
# =============================================================================

# Number of items returned when the caller gives no limit
DEFAULT_LIMIT: int = 10

# Candidate pool size is max(limit × multiplier, min candidates)
CANDIDATE_MULTIPLIER: int = 3
MIN_CANDIDATES: int = 30

# =============================================================================
# Seeding
# =============================================================================

# Expert weights: sin(seed·(i·cols + j + 1)·2.1) · sqrt(2/(rows+cols))
EXPERT_WEIGHT_FREQUENCY: float = 2.1

# Expert bias: sin(seed·(i+1)·1.3) · 0.1
EXPERT_BIAS_FREQUENCY: float = 1.3
EXPERT_BIAS_SCALE: float = 0.1

# Gate weights: affinity · (0.8 + 0.4·sin((j+1)(e+1)·0.7))
GATE_BASE: float = 0.8
GATE_SPREAD: float = 0.4
GATE_FREQUENCY: float = 0.7

# Placeholder item embeddings: sin(c·(d+1)·0.37)·0.5 + 0.5
ITEM_EMBEDDING_FREQUENCY: float = 0.37

# =============================================================================
# Collaborative Filtering
# =============================================================================

CF_DEFAULT_K: int = 20
CF_DEFAULT_MIN_OVERLAP: int = 2
CF_DEFAULT_DECAY_FACTOR: float = 0.95
MS_PER_DAY: int = 86_400_000

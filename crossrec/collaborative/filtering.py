"""
Memory-based collaborative filtering.

User-based: "users similar to you also liked X"

    pred(u, i) = ū + Σ_{v ∈ N(u)} sim(u,v) · (r_{v,i} − v̄) / Σ |sim(u,v)|

Item-based: "items similar to what you liked"

    pred(u, i) = Σ_{j ∈ N(i)} sim(i,j) · r_{u,j} / Σ |sim(i,j)|

Similarity is cosine similarity on sparse score vectors. Interaction
scores are discounted by exponential time decay relative to the most
recent interaction.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from crossrec.config.params import CollaborativeFilteringParams
from crossrec.core.constants import MS_PER_DAY
from crossrec.utils.math_utils import clip, pearson_correlation

logger = logging.getLogger(__name__)


SparseVector = Dict[str, float]
SparseMatrix = Dict[str, SparseVector]


@dataclass
class Interaction:
    """One user-item interaction."""
    user_id: str
    item_id: str
    score: float      # normalized strength in [0, 1]
    timestamp: float  # unix time in milliseconds


@dataclass
class Neighbor:
    """A similar user or item."""
    id: str
    similarity: float


@dataclass
class CFPrediction:
    """A predicted score for an unseen item."""
    item_id: str
    predicted_score: float


# =============================================================================
# Similarity
# =============================================================================

def sparse_cosine_similarity(a: SparseVector, b: SparseVector) -> float:
    """
    Cosine similarity between two sparse vectors.

    Returns:
        Similarity in [-1, 1], or 0.0 if either vector has zero magnitude
    """
    smaller, larger = (a, b) if len(a) <= len(b) else (b, a)
    dot = sum(v * larger[k] for k, v in smaller.items() if k in larger)

    norm_a = math.sqrt(sum(v * v for v in a.values()))
    norm_b = math.sqrt(sum(v * v for v in b.values()))
    denom = norm_a * norm_b
    if denom == 0:
        return 0.0
    return dot / denom


def sparse_pearson_correlation(a: SparseVector, b: SparseVector) -> float:
    """
    Pearson correlation over co-rated keys only.

    Returns:
        Correlation in [-1, 1], or 0.0 with fewer than two co-rated keys
        or zero variance
    """
    co_rated = [k for k in a if k in b]
    return pearson_correlation([a[k] for k in co_rated], [b[k] for k in co_rated])


# =============================================================================
# Matrix Construction
# =============================================================================

def _build_matrix(interactions: List[Interaction], by_user: bool) -> SparseMatrix:
    matrix: SparseMatrix = {}
    # Later interactions overwrite earlier ones
    for it in sorted(interactions, key=lambda i: i.timestamp):
        row, col = (it.user_id, it.item_id) if by_user else (it.item_id, it.user_id)
        matrix.setdefault(row, {})[col] = it.score
    return matrix


def build_user_item_matrix(interactions: List[Interaction]) -> SparseMatrix:
    """userId → (itemId → score); the latest interaction per pair wins."""
    return _build_matrix(interactions, by_user=True)


def build_item_user_matrix(interactions: List[Interaction]) -> SparseMatrix:
    """itemId → (userId → score); the latest interaction per pair wins."""
    return _build_matrix(interactions, by_user=False)


# =============================================================================
# Neighbor Discovery
# =============================================================================

def _count_overlap(a: SparseVector, b: SparseVector) -> int:
    smaller, larger = (a, b) if len(a) <= len(b) else (b, a)
    return sum(1 for k in smaller if k in larger)


def find_nearest_neighbors(
    target: str,
    matrix: SparseMatrix,
    k: int,
    min_overlap: int
) -> List[Neighbor]:
    """
    Top-k most similar rows to ``target``.

    Only rows sharing at least ``min_overlap`` keys with the target and
    with positive cosine similarity are considered.

    Args:
        target: Row ID (a user for user-item, an item for item-user)
        matrix: Sparse matrix
        k: Number of neighbors
        min_overlap: Minimum shared keys

    Returns:
        Neighbors sorted by descending similarity
    """
    target_vector = matrix.get(target)
    if not target_vector:
        return []

    neighbors = []
    for entity_id, vector in matrix.items():
        if entity_id == target:
            continue
        if _count_overlap(target_vector, vector) < min_overlap:
            continue
        similarity = sparse_cosine_similarity(target_vector, vector)
        if similarity > 0:
            neighbors.append(Neighbor(id=entity_id, similarity=similarity))

    neighbors.sort(key=lambda n: -n.similarity)
    return neighbors[:k]


# =============================================================================
# Prediction
# =============================================================================

def _mean(vector: SparseVector) -> float:
    if not vector:
        return 0.0
    return sum(vector.values()) / len(vector)


def predict_user_based(
    user_id: str,
    item_id: str,
    matrix: SparseMatrix,
    neighbors: List[Neighbor]
) -> float:
    """
    Mean-centered weighted average over neighbors who rated the item.

    Returns:
        Prediction clamped to [0, 1]; the user's mean when no neighbor
        rated the item; 0.0 for an unknown user
    """
    user_vector = matrix.get(user_id)
    if user_vector is None:
        return 0.0

    user_mean = _mean(user_vector)
    weighted_sum = 0.0
    total_weight = 0.0

    for neighbor in neighbors:
        neighbor_vector = matrix.get(neighbor.id)
        if not neighbor_vector or item_id not in neighbor_vector:
            continue
        weighted_sum += neighbor.similarity * (neighbor_vector[item_id] - _mean(neighbor_vector))
        total_weight += abs(neighbor.similarity)

    if total_weight == 0:
        return user_mean

    return clip(user_mean + weighted_sum / total_weight, 0.0, 1.0)


def predict_item_based(
    user_id: str,
    item_id: str,
    matrix: SparseMatrix,
    neighbors: List[Neighbor]
) -> float:
    """
    Weighted average of the user's scores on neighbor items.

    ``matrix`` is item-user. Returns 0.0 when the user rated no neighbor.
    """
    weighted_sum = 0.0
    total_weight = 0.0

    for neighbor in neighbors:
        item_vector = matrix.get(neighbor.id)
        if not item_vector or user_id not in item_vector:
            continue
        weighted_sum += neighbor.similarity * item_vector[user_id]
        total_weight += abs(neighbor.similarity)

    if total_weight == 0:
        return 0.0

    return clip(weighted_sum / total_weight, 0.0, 1.0)


# =============================================================================
# Time Decay
# =============================================================================

def apply_time_decay(interactions: List[Interaction], decay_factor: float) -> List[Interaction]:
    """
    Discount scores by decay_factor ^ (days before the latest interaction).

    The most recent interaction keeps its full score. A factor of 1 or
    more leaves scores unchanged. The input list is not modified.
    """
    if not interactions:
        return []

    if decay_factor >= 1:
        return [replace(i) for i in interactions]

    latest = max(i.timestamp for i in interactions)
    return [
        replace(i, score=i.score * decay_factor ** ((latest - i.timestamp) / MS_PER_DAY))
        for i in interactions
    ]


# =============================================================================
# Recommendation API
# =============================================================================

def get_recommendations_cf(
    user_id: str,
    interactions: List[Interaction],
    params: Optional[CollaborativeFilteringParams] = None,
    max_results: int = 10
) -> List[CFPrediction]:
    """
    Top-N collaborative-filtering recommendations for a user.

    1. Apply time decay
    2. Build the sparse matrix for the configured method
    3. Find nearest neighbors
    4. Predict scores for items the user has not interacted with
    5. Keep positive predictions, highest first

    Args:
        user_id: User to recommend for
        interactions: All user-item interactions
        params: CF parameters (defaults if None)
        max_results: Maximum number of recommendations

    Returns:
        Predictions sorted by predicted score descending
    """
    params = params or CollaborativeFilteringParams()
    decayed = apply_time_decay(interactions, params.decay_factor)

    if params.method == "user-based":
        predictions = _recommend_user_based(user_id, decayed, params)
    else:
        predictions = _recommend_item_based(user_id, decayed, params)

    predictions.sort(key=lambda p: -p.predicted_score)
    logger.debug(
        "CF (%s) for %s: %d candidates scored", params.method, user_id, len(predictions)
    )
    return predictions[:max_results]


def _recommend_user_based(
    user_id: str,
    interactions: List[Interaction],
    params: CollaborativeFilteringParams
) -> List[CFPrediction]:
    matrix = build_user_item_matrix(interactions)
    user_vector = matrix.get(user_id)
    if not user_vector:
        return []

    neighbors = find_nearest_neighbors(user_id, matrix, params.k, params.min_overlap)
    if not neighbors:
        return []

    # Items rated by neighbors but not by the user, in discovery order
    candidates: Dict[str, None] = {}
    for neighbor in neighbors:
        for item_id in matrix[neighbor.id]:
            if item_id not in user_vector:
                candidates.setdefault(item_id)

    predictions = []
    for item_id in candidates:
        score = predict_user_based(user_id, item_id, matrix, neighbors)
        if score > 0:
            predictions.append(CFPrediction(item_id=item_id, predicted_score=score))
    return predictions


def _recommend_item_based(
    user_id: str,
    interactions: List[Interaction],
    params: CollaborativeFilteringParams
) -> List[CFPrediction]:
    user_item = build_user_item_matrix(interactions)
    item_user = build_item_user_matrix(interactions)

    user_vector = user_item.get(user_id)
    if not user_vector:
        return []

    predictions = []
    for item_id in item_user:
        if item_id in user_vector:
            continue
        neighbors = find_nearest_neighbors(item_id, item_user, params.k, params.min_overlap)
        if not neighbors:
            continue
        score = predict_item_based(user_id, item_id, item_user, neighbors)
        if score > 0:
            predictions.append(CFPrediction(item_id=item_id, predicted_score=score))
    return predictions

"""
Collaborative filtering for crossrec.

User-based and item-based neighborhood recommenders over explicit
user-item interactions, with exponential time decay.
"""

from crossrec.collaborative.filtering import (
    Interaction,
    Neighbor,
    CFPrediction,
    sparse_cosine_similarity,
    sparse_pearson_correlation,
    build_user_item_matrix,
    build_item_user_matrix,
    find_nearest_neighbors,
    predict_user_based,
    predict_item_based,
    apply_time_decay,
    get_recommendations_cf,
)

__all__ = [
    "Interaction",
    "Neighbor",
    "CFPrediction",
    "sparse_cosine_similarity",
    "sparse_pearson_correlation",
    "build_user_item_matrix",
    "build_item_user_matrix",
    "find_nearest_neighbors",
    "predict_user_based",
    "predict_item_based",
    "apply_time_decay",
    "get_recommendations_cf",
]

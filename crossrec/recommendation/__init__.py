"""
Recommendation orchestration for crossrec.

Strategy selection, candidate scoring and the engine entry point.
"""

from crossrec.recommendation.engine import (
    RecommendationEngine,
    create_engine,
    select_strategy,
)
from crossrec.recommendation.scoring import (
    ItemEmbeddingSource,
    DeterministicItemSource,
    score_candidates,
    rank_items,
    uniform_gate_weights,
    generate_fallback_items,
)

__all__ = [
    "RecommendationEngine",
    "create_engine",
    "select_strategy",
    "ItemEmbeddingSource",
    "DeterministicItemSource",
    "score_candidates",
    "rank_items",
    "uniform_gate_weights",
    "generate_fallback_items",
]

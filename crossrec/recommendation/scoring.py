"""
Candidate scoring and ranking.

The MMoE task output is a dense vector in the target service's latent
space. Candidates are scored by cosine similarity against it:

    score(item) = (y · e_item) / (||y|| × ||e_item||)

Candidate embeddings come from an ItemEmbeddingSource. The default
DeterministicItemSource generates reproducible placeholder embeddings;
a production deployment plugs in an item-embedding index instead.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Sequence, Tuple

import numpy as np

from crossrec.core.constants import ServiceId, ALL_SERVICES, ITEM_EMBEDDING_FREQUENCY
from crossrec.core.types import RecommendationItem


class ItemEmbeddingSource(ABC):
    """Supplies candidate items with embeddings in a service's latent space."""

    @abstractmethod
    def candidates(
        self,
        target_service: ServiceId,
        dim: int,
        count: int
    ) -> List[Tuple[str, np.ndarray]]:
        """
        Return up to ``count`` (item_id, embedding) pairs.

        Args:
            target_service: Service the items belong to
            dim: Embedding dimension (the MMoE output dimension)
            count: Number of candidates requested
        """


class DeterministicItemSource(ItemEmbeddingSource):
    """
    Placeholder item source with reproducible embeddings.

    Item c (ids ``item-1``, ``item-2``, ...) has embedding
    e[d] = sin(c · (d + 1) · 0.37) · 0.5 + 0.5. The target service is
    ignored, so every service shares one synthetic catalog.
    """

    def __init__(self, prefix: str = "item", frequency: float = ITEM_EMBEDDING_FREQUENCY):
        self.prefix = prefix
        self.frequency = frequency

    def candidates(
        self,
        target_service: ServiceId,
        dim: int,
        count: int
    ) -> List[Tuple[str, np.ndarray]]:
        c = np.arange(1, count + 1, dtype=float)[:, None]
        d = np.arange(1, dim + 1, dtype=float)[None, :]
        embeddings = np.sin(c * d * self.frequency) * 0.5 + 0.5
        return [(f"{self.prefix}-{i + 1}", embeddings[i]) for i in range(count)]


def score_candidates(
    task_output: Sequence[float],
    candidates: List[Tuple[str, np.ndarray]]
) -> List[Tuple[str, float]]:
    """
    Cosine similarity of every candidate against the task output.

    Zero-magnitude vectors score 0.0.

    Returns:
        (item_id, score) pairs in candidate order
    """
    if not candidates:
        return []

    y = np.asarray(task_output, dtype=float)
    matrix = np.vstack([emb for _, emb in candidates])
    dots = matrix @ y
    denoms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(y)
    scores = np.divide(dots, denoms, out=np.zeros_like(dots), where=denoms > 0)
    scores = np.clip(scores, -1.0, 1.0)
    return [(item_id, float(s)) for (item_id, _), s in zip(candidates, scores)]


def rank_items(
    scored: List[Tuple[str, float]],
    gate_weights: Dict[ServiceId, float],
    limit: int
) -> List[RecommendationItem]:
    """
    Sort by score descending (stable) and keep the top ``limit``.

    Each item's expert contributions is its own copy of ``gate_weights``.
    """
    ordered = sorted(scored, key=lambda pair: -pair[1])
    return [
        RecommendationItem(
            item_id=item_id,
            score=score,
            expert_contributions=dict(gate_weights),
        )
        for item_id, score in ordered[:limit]
    ]


def uniform_gate_weights(services: Sequence[ServiceId] = ALL_SERVICES) -> Dict[ServiceId, float]:
    """Equal weight 1/len(services) for every service."""
    weight = 1.0 / len(services)
    return {service: weight for service in services}


def generate_fallback_items(limit: int) -> List[RecommendationItem]:
    """
    Static popularity list used when a user has no data at all.

    Item at rank i (0-based) is ``popular-{i+1}`` with score 1/(i+1).
    """
    return [
        RecommendationItem(
            item_id=f"popular-{i + 1}",
            score=1.0 / (i + 1),
            expert_contributions=uniform_gate_weights(),
        )
        for i in range(limit)
    ]

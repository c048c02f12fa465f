"""
Shared fixtures and configuration for crossrec tests.
"""

import pytest


# =============================================================================
# Feature Fixtures
# =============================================================================

@pytest.fixture
def brain_only_features():
    """User who only has Brain data."""
    from crossrec.core.types import UserFeatures
    return UserFeatures(
        user_id="brain-only",
        active_services=["brain"],
        service_features={
            "brain": [1, 0.5, 0.8, 0.3, 0.7, 0.9, 0.4, 0.6],
        },
    )


@pytest.fixture
def multi_service_features():
    """User active in Brain, Planner and Cafe."""
    from crossrec.core.types import UserFeatures
    return UserFeatures(
        user_id="multi",
        active_services=["brain", "planner", "cafe"],
        service_features={
            "brain": [1, 0.5, 0.8, 0.3, 0.7, 0.9, 0.4, 0.6],
            "planner": [0.3, 0.6, 0.2, 0.9, 0.4, 0.1, 0.8, 0.5],
            "cafe": [0.7, 0.2, 0.5, 0.8, 0.1, 0.4, 0.6, 0.3],
        },
    )


@pytest.fixture
def empty_features():
    """User with no data anywhere."""
    from crossrec.core.types import UserFeatures
    return UserFeatures(user_id="empty-user", active_services=[], service_features={})


# =============================================================================
# Engine Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Settings with library defaults."""
    from crossrec.config.settings import Settings
    return Settings()


@pytest.fixture
def engine(settings):
    """Initialized engine (8 dims per service, 16-dim expert output)."""
    from crossrec.recommendation.engine import RecommendationEngine
    return RecommendationEngine(settings=settings).init_engine(
        feature_dim_per_service=8,
        expert_output_dim=16,
    )


@pytest.fixture
def mmoe_model():
    """MMoE model with 5 × 8 input and 16-dim output."""
    from crossrec.model.mmoe import MMoEModel
    return MMoEModel(input_dim=40, expert_output_dim=16)


# =============================================================================
# Cross-Domain Fixtures
# =============================================================================

@pytest.fixture
def mapper():
    """Mapper over a private, empty registry."""
    from crossrec.transfer.mapping import CrossDomainMapper
    return CrossDomainMapper()


@pytest.fixture
def doubling_overlap_users():
    """Overlap users where target = 2 × source."""
    from crossrec.transfer.mapping import OverlapUser
    return [
        OverlapUser(user_id="u1", source_embedding=[1, 0], target_embedding=[2, 0]),
        OverlapUser(user_id="u2", source_embedding=[0, 1], target_embedding=[0, 2]),
        OverlapUser(user_id="u3", source_embedding=[1, 1], target_embedding=[2, 2]),
    ]


@pytest.fixture
def rotation_overlap_users():
    """Overlap users where target is a 90° rotation: (x, y) → (−y, x)."""
    from crossrec.transfer.mapping import OverlapUser
    return [
        OverlapUser(user_id="u1", source_embedding=[1, 0], target_embedding=[0, 1]),
        OverlapUser(user_id="u2", source_embedding=[0, 1], target_embedding=[-1, 0]),
        OverlapUser(user_id="u3", source_embedding=[1, 1], target_embedding=[-1, 1]),
    ]


@pytest.fixture(autouse=True)
def reset_global_settings():
    """Isolate tests that touch the cached global settings."""
    from crossrec.config import settings as settings_module
    settings_module._settings = None
    yield
    settings_module._settings = None

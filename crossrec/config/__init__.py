"""
Configuration module for crossrec.

Provides environment-backed settings and validated parameter models.
"""

from crossrec.config.params import EngineConfig, CollaborativeFilteringParams
from crossrec.config.settings import Settings, get_settings, configure

__all__ = [
    "EngineConfig",
    "CollaborativeFilteringParams",
    "Settings",
    "get_settings",
    "configure",
]

"""
Global configuration settings for crossrec.

Loads configuration from environment variables and provides
typed access to engine defaults.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Dict, Any

from dotenv import load_dotenv

from crossrec.core.constants import (
    DEFAULT_FEATURE_DIM_PER_SERVICE,
    DEFAULT_EXPERT_OUTPUT_DIM,
    DEFAULT_RIDGE_LAMBDA,
    DEFAULT_LIMIT,
    CANDIDATE_MULTIPLIER,
    MIN_CANDIDATES,
)
from crossrec.config.params import EngineConfig
from crossrec.utils.logger_config import setup_logging

load_dotenv()


@dataclass
class Settings:
    """Global settings for crossrec."""

    # Model dimensions
    feature_dim_per_service: int = DEFAULT_FEATURE_DIM_PER_SERVICE
    expert_output_dim: int = DEFAULT_EXPERT_OUTPUT_DIM

    # Cross-domain mapping
    ridge_lambda: float = DEFAULT_RIDGE_LAMBDA

    # Ranking
    default_limit: int = DEFAULT_LIMIT
    candidate_multiplier: int = CANDIDATE_MULTIPLIER
    min_candidates: int = MIN_CANDIDATES

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def __post_init__(self):
        """Load settings from environment variables."""
        self.log_level = os.getenv("LOG_LEVEL", self.log_level)

        if os.getenv("CROSSREC_FEATURE_DIM_PER_SERVICE"):
            self.feature_dim_per_service = int(os.getenv("CROSSREC_FEATURE_DIM_PER_SERVICE"))
        if os.getenv("CROSSREC_EXPERT_OUTPUT_DIM"):
            self.expert_output_dim = int(os.getenv("CROSSREC_EXPERT_OUTPUT_DIM"))
        if os.getenv("CROSSREC_RIDGE_LAMBDA"):
            self.ridge_lambda = float(os.getenv("CROSSREC_RIDGE_LAMBDA"))
        if os.getenv("CROSSREC_DEFAULT_LIMIT"):
            self.default_limit = int(os.getenv("CROSSREC_DEFAULT_LIMIT"))

    def to_engine_config(self, **overrides) -> EngineConfig:
        """Build a validated EngineConfig from these settings."""
        values = {
            "feature_dim_per_service": self.feature_dim_per_service,
            "expert_output_dim": self.expert_output_dim,
            "ridge_lambda": self.ridge_lambda,
            "default_limit": self.default_limit,
            "candidate_multiplier": self.candidate_multiplier,
            "min_candidates": self.min_candidates,
        }
        values.update(overrides)
        return EngineConfig(**values)

    def configure_logging(self, log_file: Optional[str] = None) -> logging.Logger:
        """
        Apply log_level and log_format to the crossrec logger tree.

        Args:
            log_file: Optional file to also write logs to

        Returns:
            The crossrec root logger
        """
        return setup_logging(self.log_level, self.log_format, log_file)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "feature_dim_per_service": self.feature_dim_per_service,
            "expert_output_dim": self.expert_output_dim,
            "ridge_lambda": self.ridge_lambda,
            "default_limit": self.default_limit,
            "candidate_multiplier": self.candidate_multiplier,
            "min_candidates": self.min_candidates,
            "log_level": self.log_level,
        }


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure(**kwargs) -> Settings:
    """
    Configure global settings.

    Args:
        **kwargs: Settings fields to override; unknown keys are ignored

    Returns:
        Configured Settings instance
    """
    settings = get_settings()

    for key, value in kwargs.items():
        if hasattr(settings, key):
            setattr(settings, key, value)

    return settings

"""
Transfer learning module for crossrec.

Implements cross-domain knowledge transfer between services:
- EMCDR-style linear mappings learned by ridge regression
- A thread-safe, injectable mapping registry
- Feature augmentation for services a user has never used
"""

from crossrec.transfer.mapping import (
    OverlapUser,
    ServiceMapping,
    MappingRegistry,
    CrossDomainMapper,
)
from crossrec.transfer.augmentation import (
    augment_features,
    select_richest_service,
)

__all__ = [
    "OverlapUser",
    "ServiceMapping",
    "MappingRegistry",
    "CrossDomainMapper",
    "augment_features",
    "select_richest_service",
]

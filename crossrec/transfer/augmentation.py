"""
Cross-domain feature augmentation.

Fills in feature vectors for services a user has never used by projecting
their richest observed profile through the cross-domain mapper.

"Richest" is the active service whose vector has the largest L2 norm. This
is a crude proxy for how much information the profile carries.
"""

import logging
from typing import Optional, Sequence, Tuple

from crossrec.core.constants import ServiceId, ALL_SERVICES
from crossrec.core.types import UserFeatures
from crossrec.transfer.mapping import CrossDomainMapper
from crossrec.utils.math_utils import l2_norm

logger = logging.getLogger(__name__)


def select_richest_service(features: UserFeatures) -> Optional[Tuple[ServiceId, float]]:
    """
    Pick the active service with the highest-norm feature vector.

    Ties go to the service listed first in ``active_services``.

    Returns:
        (service, norm), or None if no active service has a vector
    """
    best = None
    best_norm = -1.0

    for service in features.active_services:
        vec = features.service_features.get(service)
        if vec is None:
            continue
        norm = l2_norm(vec)
        if norm > best_norm:
            best_norm = norm
            best = service

    if best is None:
        return None
    return best, best_norm


def augment_features(
    features: UserFeatures,
    mapper: CrossDomainMapper,
    services: Sequence[ServiceId] = ALL_SERVICES
) -> UserFeatures:
    """
    Synthesize vectors for every service missing from ``service_features``.

    The input is not modified. Synthesized vectors appear only in the
    returned copy's ``service_features``; ``active_services`` is unchanged.

    Args:
        features: Observed user features
        mapper: Cross-domain mapper used for projection
        services: Services to fill

    Returns:
        Augmented copy of the features
    """
    augmented = features.copy()

    richest = select_richest_service(features)
    if richest is None:
        return augmented

    best_source, best_norm = richest
    source_profile = features.service_features[best_source]

    filled = []
    for service in augmented.missing_services(services):
        augmented.service_features[service] = mapper.map_user_profile(
            best_source, service, source_profile
        )
        filled.append(service.value)

    logger.debug(
        "Augmented user %s from %s (norm=%.4f): %s",
        features.user_id, best_source.value, best_norm, filled,
    )
    return augmented

"""
Typed PRD and feature services built on the sync coordinator.
"""

from .feature_service import FeatureService
from .prd_service import PRDService
from .types import (
    FEATURE_DIFFICULTIES,
    FEATURE_PRIORITIES,
    PRD,
    Feature,
    FeatureSet,
    prd_changes_to_payload,
)

__all__ = [
    "PRD",
    "Feature",
    "FeatureSet",
    "FEATURE_PRIORITIES",
    "FEATURE_DIFFICULTIES",
    "prd_changes_to_payload",
    "PRDService",
    "FeatureService",
]

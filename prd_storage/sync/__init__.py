"""
Dual-store synchronization.

The coordinator is the only component that decides which store's copy
of a record a caller sees.
"""

from .coordinator import SyncCoordinator, build_coordinator, cache_key

__all__ = [
    "SyncCoordinator",
    "build_coordinator",
    "cache_key",
]

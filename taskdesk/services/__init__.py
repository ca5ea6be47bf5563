"""Services that coordinate work across repositories."""

from .consistency import CascadeResult, ConsistencyCoordinator, get_consistency_coordinator

__all__ = [
    "CascadeResult",
    "ConsistencyCoordinator",
    "get_consistency_coordinator",
]

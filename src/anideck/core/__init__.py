"""Discovery engine core."""

from .candidate_pool import CandidatePool, CandidatePoolManager, PoolState
from .engine import DiscoverySession
from .exclusion import ExclusionOracle

__all__ = [
    "CandidatePool",
    "CandidatePoolManager",
    "DiscoverySession",
    "ExclusionOracle",
    "PoolState",
]

"""GRI Backend Services"""
from .near_client import NearClient, NearRPCError, DAOPolicy
from .normalizer import Proposal, normalize_proposal
from .store import DAOStore
from .indexer import DAOIndexer, compute_start_id
from .refresh_scheduler import RefreshScheduler
from .gri_engine import compute_gri, grade_of, GRIScore
from .aggregation import median_of, mean_of, summarize_network

__all__ = [
    "NearClient",
    "NearRPCError",
    "DAOPolicy",
    "Proposal",
    "normalize_proposal",
    "DAOStore",
    "DAOIndexer",
    "compute_start_id",
    "RefreshScheduler",
    # GRI engine
    "compute_gri",
    "grade_of",
    "GRIScore",
    # Aggregation
    "median_of",
    "mean_of",
    "summarize_network",
]

"""Database models"""
from gri.models.database import Base
from gri.models.dao import DAO
from gri.models.governance import Proposal, VoteRecord

__all__ = [
    "Base",
    "DAO",
    "Proposal",
    "VoteRecord",
]

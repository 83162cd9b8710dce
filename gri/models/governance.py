"""Governance models"""
from sqlalchemy import Column, Integer, String, BigInteger, ForeignKey, Text, JSON

from gri.models.database import Base


class Proposal(Base):
    """Governance proposal, keyed by (dao_id, id) where id is the on-chain sequence number"""
    __tablename__ = "proposals"

    dao_id = Column(String(128), ForeignKey("daos.id"), primary_key=True)
    id = Column(Integer, primary_key=True, autoincrement=False)
    proposer = Column(String(128), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    kind_type = Column(String(64), nullable=False)
    kind = Column(JSON, nullable=True)
    status = Column(String(20), nullable=False, index=True)
    votes_approve = Column(BigInteger, nullable=False, default=0)
    votes_reject = Column(BigInteger, nullable=False, default=0)
    votes_remove = Column(BigInteger, nullable=False, default=0)
    submission_time = Column(BigInteger, nullable=False)  # nanoseconds

    def __repr__(self):
        return f"<Proposal {self.dao_id}#{self.id} ({self.status})>"


class VoteRecord(Base):
    """Latest vote of a voter on a proposal"""
    __tablename__ = "votes"

    dao_id = Column(String(128), primary_key=True)
    proposal_id = Column(Integer, primary_key=True, autoincrement=False)
    voter = Column(String(128), primary_key=True)
    vote = Column(Text, nullable=False)  # unknown actions pass through verbatim

    def __repr__(self):
        return f"<VoteRecord {self.voter} ({self.vote})>"

"""DAO and proposal schemas"""
from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Dict, Any, List


class GRIMetricResponse(BaseModel):
    score: float
    weight: float
    raw_value: float
    description: str


class GRIBreakdownResponse(BaseModel):
    participation: GRIMetricResponse
    execution_reliability: GRIMetricResponse
    governance_latency: GRIMetricResponse
    transparency: GRIMetricResponse


class GRIScoreResponse(BaseModel):
    overall: float
    breakdown: GRIBreakdownResponse
    last_updated: str
    version: str


class DAOResponse(BaseModel):
    id: str
    name: str
    contract_id: str
    member_count: int
    proposal_count: int = 0
    last_indexed_at: Optional[datetime] = None
    gri_score: Optional[float] = None


class DAOListResponse(BaseModel):
    daos: List[DAOResponse]
    total_count: int
    network_gri: float


class VoteCountsResponse(BaseModel):
    approve: int
    reject: int
    remove: int


class ProposalResponse(BaseModel):
    id: int
    dao_id: str
    proposer: str
    description: str
    kind_type: str
    kind: Any = None
    status: str
    vote_count: VoteCountsResponse
    submission_time: str  # nanoseconds, string-encoded
    votes: Dict[str, str] = {}


class DAOOverviewResponse(BaseModel):
    dao: DAOResponse
    gri: GRIScoreResponse
    recent_proposals: List[ProposalResponse]
    member_count: int
    active_members: int


class ProposalListResponse(BaseModel):
    dao_id: str
    proposals: List[ProposalResponse]
    total_count: int


class DAOGRIResponse(BaseModel):
    dao_id: str
    dao_name: str
    gri: GRIScoreResponse
    grade: str
    proposal_count: int
    member_count: int


class ProposalDetailResponse(BaseModel):
    proposal: ProposalResponse
    voter_count: int
    participation_rate: float
    member_count: int

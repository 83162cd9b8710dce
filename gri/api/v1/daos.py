"""DAO API endpoints"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException

from gri.api.deps import get_indexer, get_store
from gri.models.dao import DAO
from gri.schemas.dao import (
    DAOResponse,
    DAOListResponse,
    DAOOverviewResponse,
    ProposalListResponse,
    DAOGRIResponse,
    ProposalDetailResponse,
    ProposalResponse,
    VoteCountsResponse,
)
from gri.services.aggregation import active_members, mean_of
from gri.services.gri_engine import compute_gri, grade_of, round_score
from gri.services.indexer import DAOIndexer
from gri.services.normalizer import Proposal
from gri.services.store import DAOStore

router = APIRouter()

RECENT_PROPOSALS_LIMIT = 10


def _proposal_to_response(p: Proposal) -> ProposalResponse:
    """Convert a canonical Proposal to its response schema"""
    return ProposalResponse(
        id=p.id,
        dao_id=p.dao_id,
        proposer=p.proposer,
        description=p.description,
        kind_type=p.kind.type.value,
        kind=p.kind.payload,
        status=p.status,
        vote_count=VoteCountsResponse(
            approve=p.vote_count.approve,
            reject=p.vote_count.reject,
            remove=p.vote_count.remove,
        ),
        submission_time=p.submission_time,
        votes=p.votes,
    )


def _dao_to_response(dao: DAO, proposal_count: int, gri_score: Optional[float]) -> DAOResponse:
    return DAOResponse(
        id=dao.id,
        name=dao.name,
        contract_id=dao.contract_id,
        member_count=dao.member_count,
        proposal_count=proposal_count,
        last_indexed_at=dao.last_indexed_at,
        gri_score=gri_score,
    )


def _newest_first(proposals: list[Proposal]) -> list[Proposal]:
    return sorted(proposals, key=lambda p: int(p.submission_time), reverse=True)


async def _require_dao(store: DAOStore, dao_id: str) -> DAO:
    dao = await store.find_dao(dao_id)
    if not dao:
        raise HTTPException(status_code=404, detail="DAO not found")
    return dao


@router.get("/daos", response_model=DAOListResponse)
async def list_daos(
    store: DAOStore = Depends(get_store),
    indexer: DAOIndexer = Depends(get_indexer),
):
    """List all tracked DAOs with their GRI score"""
    daos = await store.list_daos()

    responses = []
    for dao in daos:
        proposals = await store.list_proposals(dao.id)
        gri = compute_gri(proposals, indexer.policies.get(dao.id), dao.member_count)
        responses.append(_dao_to_response(dao, len(proposals), gri.overall))

    return DAOListResponse(
        daos=responses,
        total_count=len(daos),
        network_gri=mean_of([d.gri_score for d in responses]),
    )


@router.get("/dao/{dao_id}/overview", response_model=DAOOverviewResponse)
async def get_dao_overview(
    dao_id: str,
    store: DAOStore = Depends(get_store),
    indexer: DAOIndexer = Depends(get_indexer),
):
    """DAO summary with GRI and recent activity"""
    dao = await _require_dao(store, dao_id)
    proposals = await store.list_proposals(dao_id)
    gri = compute_gri(proposals, indexer.policies.get(dao_id), dao.member_count)

    recent = _newest_first(proposals)[:RECENT_PROPOSALS_LIMIT]

    return DAOOverviewResponse(
        dao=_dao_to_response(dao, len(proposals), gri.overall),
        gri=gri.to_dict(),
        recent_proposals=[_proposal_to_response(p) for p in recent],
        member_count=dao.member_count,
        active_members=active_members(proposals),
    )


@router.get("/dao/{dao_id}/proposals", response_model=ProposalListResponse)
async def list_dao_proposals(
    dao_id: str,
    status: Optional[str] = None,
    store: DAOStore = Depends(get_store),
):
    """All stored proposals of a DAO, newest first, optionally filtered by status"""
    await _require_dao(store, dao_id)
    proposals = await store.list_proposals(dao_id)

    if status:
        proposals = [p for p in proposals if p.status == status]

    proposals = _newest_first(proposals)

    return ProposalListResponse(
        dao_id=dao_id,
        proposals=[_proposal_to_response(p) for p in proposals],
        total_count=len(proposals),
    )


@router.get("/dao/{dao_id}/gri", response_model=DAOGRIResponse)
async def get_dao_gri(
    dao_id: str,
    store: DAOStore = Depends(get_store),
    indexer: DAOIndexer = Depends(get_indexer),
):
    """Detailed GRI breakdown"""
    dao = await _require_dao(store, dao_id)
    proposals = await store.list_proposals(dao_id)
    gri = compute_gri(proposals, indexer.policies.get(dao_id), dao.member_count)

    return DAOGRIResponse(
        dao_id=dao_id,
        dao_name=dao.name,
        gri=gri.to_dict(),
        grade=grade_of(gri.overall),
        proposal_count=len(proposals),
        member_count=dao.member_count,
    )


@router.get("/dao/{dao_id}/proposal/{proposal_id}", response_model=ProposalDetailResponse)
async def get_dao_proposal(
    dao_id: str,
    proposal_id: int,
    store: DAOStore = Depends(get_store),
):
    """Single proposal with voting metrics"""
    dao = await _require_dao(store, dao_id)
    proposal = await store.find_proposal(dao_id, proposal_id)
    if not proposal:
        raise HTTPException(status_code=404, detail="Proposal not found")

    voter_count = len(proposal.votes)
    participation_rate = voter_count / dao.member_count * 100 if dao.member_count > 0 else 0.0

    return ProposalDetailResponse(
        proposal=_proposal_to_response(proposal),
        voter_count=voter_count,
        participation_rate=round_score(participation_rate),
        member_count=dao.member_count,
    )

"""Key-indexed persistence for DAOs, proposals and votes"""
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gri.models.dao import DAO
from gri.models.governance import Proposal as ProposalRecord, VoteRecord
from gri.services.normalizer import Proposal, ProposalKind, VoteCounts

logger = structlog.get_logger()


def dao_name_from_id(dao_id: str) -> str:
    """marketing.sputnik-dao.near -> Marketing"""
    label = dao_id.split(".")[0]
    if not label:
        return dao_id
    return label[0].upper() + label[1:].replace("-", " ")


class DAOStore:
    """
    Upsert-by-natural-key store backed by SQLAlchemy.

    Each write runs in its own short transaction, so interleaved writers for
    the same key converge to last-write-wins without touching other keys.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # DAOs

    async def upsert_dao(self, dao_id: str, **fields: Any) -> DAO:
        """Create the DAO with full fields if absent, otherwise update the given fields"""
        async with self._session_factory() as session:
            dao = await session.get(DAO, dao_id)
            if dao is None:
                dao = DAO(
                    id=dao_id,
                    contract_id=dao_id,
                    name=fields.pop("name", None) or dao_name_from_id(dao_id),
                    member_count=fields.pop("member_count", 0),
                    last_indexed_at=fields.pop("last_indexed_at", None) or datetime.utcnow(),
                )
                session.add(dao)
            for key, value in fields.items():
                setattr(dao, key, value)
            await session.commit()
            return dao

    async def find_dao(self, dao_id: str) -> Optional[DAO]:
        async with self._session_factory() as session:
            return await session.get(DAO, dao_id)

    async def list_daos(self) -> List[DAO]:
        async with self._session_factory() as session:
            result = await session.execute(select(DAO).order_by(DAO.id))
            return list(result.scalars().all())

    async def count_daos(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(DAO))
            return result.scalar_one()

    # Proposals

    async def upsert_proposal(self, dao_id: str, proposal_id: int, **fields: Any) -> None:
        async with self._session_factory() as session:
            record = await session.get(ProposalRecord, (dao_id, proposal_id))
            if record is None:
                record = ProposalRecord(dao_id=dao_id, id=proposal_id)
                session.add(record)
            for key, value in fields.items():
                setattr(record, key, value)
            await session.commit()

    async def save_proposal(self, proposal: Proposal) -> None:
        """Upsert a normalized proposal (without its votes)"""
        await self.upsert_proposal(proposal.dao_id, proposal.id, **_proposal_fields(proposal))

    async def save_proposal_with_votes(self, proposal: Proposal) -> None:
        """
        Upsert a proposal and all of its votes in a single transaction.

        Either the proposal lands together with its votes or nothing does, so
        the high-water mark never moves past a proposal with missing votes.
        """
        async with self._session_factory() as session:
            record = await session.get(ProposalRecord, (proposal.dao_id, proposal.id))
            if record is None:
                record = ProposalRecord(dao_id=proposal.dao_id, id=proposal.id)
                session.add(record)
            for key, value in _proposal_fields(proposal).items():
                setattr(record, key, value)

            votes_result = await session.execute(
                select(VoteRecord).where(
                    VoteRecord.dao_id == proposal.dao_id,
                    VoteRecord.proposal_id == proposal.id,
                )
            )
            existing = {v.voter: v for v in votes_result.scalars().all()}
            for voter, action in proposal.votes.items():
                vote = existing.get(voter)
                if vote is None:
                    session.add(VoteRecord(
                        dao_id=proposal.dao_id,
                        proposal_id=proposal.id,
                        voter=voter,
                        vote=action,
                    ))
                else:
                    vote.vote = action

            await session.commit()

    async def find_max_proposal_id(self, dao_id: str) -> int:
        """Local high-water mark, -1 when nothing is stored"""
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.max(ProposalRecord.id)).where(ProposalRecord.dao_id == dao_id)
            )
            max_id = result.scalar_one_or_none()
            return -1 if max_id is None else max_id

    async def list_proposals(self, dao_id: str) -> List[Proposal]:
        """All stored proposals of a DAO, id descending, with votes attached"""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ProposalRecord)
                .where(ProposalRecord.dao_id == dao_id)
                .order_by(ProposalRecord.id.desc())
            )
            records = result.scalars().all()

            votes_result = await session.execute(
                select(VoteRecord).where(VoteRecord.dao_id == dao_id)
            )
            votes_by_proposal: Dict[int, Dict[str, str]] = {}
            for vote in votes_result.scalars().all():
                votes_by_proposal.setdefault(vote.proposal_id, {})[vote.voter] = vote.vote

        return [_to_proposal(r, votes_by_proposal.get(r.id, {})) for r in records]

    async def find_proposal(self, dao_id: str, proposal_id: int) -> Optional[Proposal]:
        async with self._session_factory() as session:
            record = await session.get(ProposalRecord, (dao_id, proposal_id))
            if record is None:
                return None
            votes_result = await session.execute(
                select(VoteRecord).where(
                    VoteRecord.dao_id == dao_id,
                    VoteRecord.proposal_id == proposal_id,
                )
            )
            votes = {v.voter: v.vote for v in votes_result.scalars().all()}
        return _to_proposal(record, votes)

    # Votes

    async def upsert_vote(self, dao_id: str, proposal_id: int, voter: str, action: str) -> None:
        async with self._session_factory() as session:
            record = await session.get(VoteRecord, (dao_id, proposal_id, voter))
            if record is None:
                session.add(VoteRecord(dao_id=dao_id, proposal_id=proposal_id, voter=voter, vote=action))
            else:
                record.vote = action
            await session.commit()


def _proposal_fields(proposal: Proposal) -> Dict[str, Any]:
    return {
        "proposer": proposal.proposer,
        "description": proposal.description,
        "kind_type": proposal.kind.type.value,
        "kind": proposal.kind.to_raw(),
        "status": proposal.status,
        "votes_approve": proposal.vote_count.approve,
        "votes_reject": proposal.vote_count.reject,
        "votes_remove": proposal.vote_count.remove,
        "submission_time": int(proposal.submission_time),
    }


def _to_proposal(record: ProposalRecord, votes: Dict[str, str]) -> Proposal:
    """Map a stored row back to the canonical Proposal"""
    return Proposal(
        id=record.id,
        dao_id=record.dao_id,
        proposer=record.proposer,
        description=record.description or "",
        kind=ProposalKind.from_raw(record.kind),
        status=record.status,
        vote_count=VoteCounts(
            approve=record.votes_approve or 0,
            reject=record.votes_reject or 0,
            remove=record.votes_remove or 0,
        ),
        submission_time=str(record.submission_time),
        votes=votes,
    )

"""Sputnik DAO proposal indexer for GRI"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List, Sequence

import structlog

from gri.services.near_client import NearClient, DAOPolicy
from gri.services.normalizer import normalize_proposal
from gri.services.store import DAOStore

logger = structlog.get_logger()


def compute_start_id(total_on_chain: int, high_water_mark: int, max_proposals: int) -> int:
    """
    First proposal id to fetch.

    Bounded lookback: only the newest `max_proposals` ids are guaranteed to be
    indexed. Older history of large DAOs is skipped on purpose so a pass fits
    the polling cadence.
    """
    return max(high_water_mark + 1, total_on_chain - max_proposals)


@dataclass
class DAOIndexResult:
    """Outcome of indexing one DAO"""
    dao_id: str
    member_count: int
    total_on_chain: int
    start_id: int
    proposals_indexed: int = 0
    votes_indexed: int = 0

    @property
    def up_to_date(self) -> bool:
        return self.start_id >= self.total_on_chain


@dataclass
class IndexPassResult:
    started_at: datetime
    completed_at: Optional[datetime] = None
    indexed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    proposals_indexed: int = 0
    votes_indexed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "daos_indexed": len(self.indexed),
            "daos_failed": len(self.failed),
            "failed": self.failed,
            "proposals_indexed": self.proposals_indexed,
            "votes_indexed": self.votes_indexed,
        }


class DAOIndexer:
    """
    Keeps the local store in line with a curated set of Sputnik DAOs.

    Features:
    - Refreshes each DAO's policy-derived member count
    - Backfills new proposals and their votes, bounded to the newest N ids
    - Isolates failures per DAO so one broken contract never blocks the pass
    - Optional factory discovery, disabled by default
    """

    def __init__(
        self,
        client: NearClient,
        store: DAOStore,
        tracked_daos: Sequence[str],
        max_proposals_per_dao: int = 100,
        page_size: int = 50,
        page_delay_ms: int = 0,
        dao_delay_ms: int = 0,
        discovery_enabled: bool = False,
        factory_id: str = "sputnik-dao.near",
        discovery_page_size: int = 100,
        discovery_min_proposals: int = 50,
        discovery_max_daos: int = 20,
    ):
        self.client = client
        self.store = store
        self.tracked_daos = list(tracked_daos)
        self.max_proposals_per_dao = max_proposals_per_dao
        self.page_size = page_size
        self.page_delay_ms = page_delay_ms
        self.dao_delay_ms = dao_delay_ms
        self.discovery_enabled = discovery_enabled
        self.factory_id = factory_id
        self.discovery_page_size = discovery_page_size
        self.discovery_min_proposals = discovery_min_proposals
        self.discovery_max_daos = discovery_max_daos

        self.policies: Dict[str, DAOPolicy] = {}
        self.discovered_daos: List[str] = []
        self.running = False
        self.last_pass: Optional[IndexPassResult] = None

    @classmethod
    def from_settings(cls, client: NearClient, store: DAOStore, settings) -> "DAOIndexer":
        return cls(
            client,
            store,
            tracked_daos=settings.tracked_daos,
            max_proposals_per_dao=settings.max_proposals_per_dao,
            page_size=settings.proposal_page_size,
            page_delay_ms=settings.page_delay_ms,
            dao_delay_ms=settings.dao_delay_ms,
            discovery_enabled=settings.discovery_enabled,
            factory_id=settings.factory_id,
            discovery_page_size=settings.discovery_page_size,
            discovery_min_proposals=settings.discovery_min_proposals,
            discovery_max_daos=settings.discovery_max_daos,
        )

    @property
    def last_completed_at(self) -> Optional[datetime]:
        return self.last_pass.completed_at if self.last_pass else None

    async def run_index_pass(self) -> IndexPassResult:
        """
        Index every tracked DAO sequentially.

        Never raises: per-DAO errors are logged and the loop moves on.
        """
        result = IndexPassResult(started_at=datetime.utcnow())
        self.running = True
        logger.info("Refreshing DAO data from chain", tracked=len(self.tracked_daos))

        try:
            dao_ids = list(dict.fromkeys(self.tracked_daos))
            if self.discovery_enabled:
                try:
                    await self.discover_daos()
                except Exception as e:
                    logger.error("DAO discovery failed", factory_id=self.factory_id, error=str(e))
                dao_ids.extend(d for d in self.discovered_daos if d not in dao_ids)

            for position, dao_id in enumerate(dao_ids):
                if position > 0:
                    await self._delay(self.dao_delay_ms)
                try:
                    dao_result = await self.index_dao(dao_id)
                except Exception as e:
                    result.failed.append(dao_id)
                    logger.error(
                        "Failed to index DAO",
                        dao_id=dao_id,
                        error=str(e),
                        exc_info=True,
                    )
                    continue

                result.indexed.append(dao_id)
                result.proposals_indexed += dao_result.proposals_indexed
                result.votes_indexed += dao_result.votes_indexed
        finally:
            self.running = False

        result.completed_at = datetime.utcnow()
        self.last_pass = result
        logger.info(
            "DAO data refresh complete",
            indexed=len(result.indexed),
            failed=len(result.failed),
            proposals=result.proposals_indexed,
            votes=result.votes_indexed,
        )
        return result

    async def index_dao(self, dao_id: str) -> DAOIndexResult:
        """Refresh a DAO record and backfill its newest proposals"""
        logger.debug("Indexing DAO", dao_id=dao_id)

        # 1. DAO record from the current policy
        policy = await self.client.get_policy(dao_id)
        fields: Dict[str, Any] = {"last_indexed_at": datetime.utcnow()}
        if policy is not None:
            self.policies[dao_id] = policy
            fields["member_count"] = policy.member_count
        dao = await self.store.upsert_dao(dao_id, **fields)

        # 2. Fetch range
        total_on_chain = await self.client.get_proposal_count(dao_id)
        high_water_mark = await self.store.find_max_proposal_id(dao_id)
        start_id = compute_start_id(total_on_chain, high_water_mark, self.max_proposals_per_dao)

        result = DAOIndexResult(
            dao_id=dao_id,
            member_count=dao.member_count,
            total_on_chain=total_on_chain,
            start_id=start_id,
        )

        if result.up_to_date:
            logger.debug(
                "DAO up to date",
                dao_id=dao_id,
                local=high_water_mark,
                chain=total_on_chain,
            )
            return result

        logger.info(
            "Backfilling proposals",
            dao_id=dao_id,
            from_id=start_id,
            to_id=total_on_chain,
        )

        # 3. Fetch in pages, never past the remote count
        for page_start in range(start_id, total_on_chain, self.page_size):
            if page_start > start_id:
                await self._delay(self.page_delay_ms)

            limit = min(self.page_size, total_on_chain - page_start)
            raw_proposals = await self.client.get_proposals(dao_id, page_start, limit)
            if not raw_proposals:
                # Later pages would move the high-water mark past the missing ids
                logger.warning(
                    "Empty proposal page, stopping backfill",
                    dao_id=dao_id,
                    from_index=page_start,
                    limit=limit,
                )
                break

            for raw in raw_proposals:
                proposal = normalize_proposal(raw, dao_id)
                if not start_id <= proposal.id < total_on_chain:
                    logger.debug("Skipping out-of-range proposal", dao_id=dao_id, proposal_id=proposal.id)
                    continue

                await self.store.save_proposal_with_votes(proposal)

                result.proposals_indexed += 1
                result.votes_indexed += len(proposal.votes)

        logger.info(
            "Indexed DAO",
            dao_id=dao_id,
            proposals=result.proposals_indexed,
            votes=result.votes_indexed,
        )
        return result

    async def discover_daos(self) -> List[str]:
        """
        Walk the factory's DAO list and pick up DAOs with enough proposals.

        Stops once discovery_max_daos DAOs have been discovered in total.
        Returns the DAOs newly discovered by this call.
        """
        newly_found: List[str] = []
        remaining = self.discovery_max_daos - len(self.discovered_daos)
        if remaining <= 0:
            return newly_found

        known = set(self.tracked_daos) | set(self.discovered_daos)
        from_index = 0
        suffix = f".{self.factory_id}"

        while len(newly_found) < remaining:
            names = await self.client.get_dao_list(self.factory_id, from_index, self.discovery_page_size)
            if not names:
                break
            from_index += len(names)

            for name in names:
                dao_id = name if name.endswith(suffix) else f"{name}{suffix}"
                if dao_id in known:
                    continue
                known.add(dao_id)

                count = await self.client.get_proposal_count(dao_id)
                await self._delay(self.page_delay_ms)
                if count < self.discovery_min_proposals:
                    continue

                newly_found.append(dao_id)
                if len(newly_found) >= remaining:
                    break

        self.discovered_daos.extend(newly_found)
        if newly_found:
            logger.info("Discovered DAOs", factory_id=self.factory_id, daos=newly_found)
        return newly_found

    def get_sync_status(self) -> Dict[str, Any]:
        """Get indexer sync status"""
        return {
            "running": self.running,
            "tracked_daos": len(self.tracked_daos),
            "discovered_daos": len(self.discovered_daos),
            "last_pass": self.last_pass.to_dict() if self.last_pass else None,
        }

    @staticmethod
    async def _delay(ms: int) -> None:
        if ms > 0:
            await asyncio.sleep(ms / 1000)

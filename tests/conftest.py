"""Pytest configuration and fixtures for GRI backend tests"""
import os
import time
from typing import AsyncGenerator, Dict, List, Optional, Any

# Keep the module-level engine off PostgreSQL while tests import the app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from gri.models.database import build_session_factory, init_db
from gri.services.indexer import DAOIndexer
from gri.services.near_client import DAOPolicy
from gri.services.refresh_scheduler import RefreshScheduler
from gri.services.store import DAOStore

load_dotenv()


def make_raw_proposal(
    proposal_id: int,
    status: str = "Approved",
    votes: Optional[Dict[str, str]] = None,
    description: str = "Fund the marketing working group for Q3 with 5,000 NEAR for events",
    submission_time: Any = None,
    vote_counts: Optional[Dict[str, Any]] = None,
    kind: Any = None,
) -> Dict[str, Any]:
    """Raw proposal as returned by a Sputnik DAO get_proposals call"""
    votes = votes if votes is not None else {"alice.near": "Approve"}
    return {
        "id": proposal_id,
        "proposer": "alice.near",
        "description": description,
        "kind": kind if kind is not None else {"Transfer": {"token_id": "", "receiver_id": "bob.near", "amount": "1"}},
        "status": status,
        "vote_counts": vote_counts if vote_counts is not None else {"council": [len(votes), 0, 0]},
        "votes": votes,
        "submission_time": submission_time if submission_time is not None else str(time.time_ns()),
    }


def make_policy(members: List[str]) -> DAOPolicy:
    return DAOPolicy.from_raw({
        "roles": [
            {"name": "all", "kind": "Everyone", "permissions": ["*:AddProposal"], "vote_policy": {}},
            {"name": "council", "kind": {"Group": members}, "permissions": ["*:*"], "vote_policy": {}},
        ],
        "default_vote_policy": {"weight_kind": "RoleWeight", "quorum": "0", "threshold": [1, 2]},
        "proposal_bond": "100000000000000000000000",
        "proposal_period": "604800000000000",
    })


class FakeNearClient:
    """In-memory stand-in for NearClient"""

    def __init__(self):
        self.proposals: Dict[str, List[Dict[str, Any]]] = {}
        self.policies: Dict[str, DAOPolicy] = {}
        self.factory_daos: List[str] = []
        self.failing: set = set()
        self.page_calls: List[tuple] = []

    def add_dao(self, dao_id: str, proposals: List[Dict[str, Any]], members: List[str]):
        self.proposals[dao_id] = proposals
        self.policies[dao_id] = make_policy(members)

    def _check(self, contract_id: str):
        if contract_id in self.failing:
            raise RuntimeError(f"RPC unavailable for {contract_id}")

    async def get_policy(self, contract_id: str) -> Optional[DAOPolicy]:
        self._check(contract_id)
        return self.policies.get(contract_id)

    async def get_proposal_count(self, contract_id: str) -> int:
        self._check(contract_id)
        proposals = self.proposals.get(contract_id, [])
        return max((p["id"] for p in proposals), default=-1) + 1

    async def get_proposals(self, contract_id: str, from_index: int = 0, limit: int = 100):
        self._check(contract_id)
        self.page_calls.append((contract_id, from_index, limit))
        return [
            p for p in self.proposals.get(contract_id, [])
            if from_index <= p["id"] < from_index + limit
        ]

    async def get_dao_list(self, factory_id: str = "sputnik-dao.near", from_index: int = 0, limit: int = 100):
        return self.factory_daos[from_index:from_index + limit]


@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def store(db_engine: AsyncEngine) -> DAOStore:
    return DAOStore(build_session_factory(db_engine))


@pytest.fixture
def raw_proposal():
    """Factory for raw Sputnik proposal records"""
    return make_raw_proposal


@pytest.fixture
def policy_factory():
    """Factory for policies with a single council Group role"""
    return make_policy


@pytest.fixture
def near_client() -> FakeNearClient:
    return FakeNearClient()


@pytest.fixture
def indexer(near_client: FakeNearClient, store: DAOStore) -> DAOIndexer:
    return DAOIndexer(
        near_client,
        store,
        tracked_daos=[],
        max_proposals_per_dao=100,
        page_size=50,
    )


@pytest_asyncio.fixture(scope="function")
async def client(store: DAOStore, indexer: DAOIndexer) -> AsyncGenerator[AsyncClient, None]:
    """Async test client; services are attached directly since lifespan does not run"""
    from gri.main import create_app

    app = create_app()
    app.state.store = store
    app.state.indexer = indexer
    app.state.scheduler = RefreshScheduler(indexer)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

"""Integration tests for GRI API endpoints"""
import pytest
from httpx import AsyncClient

DAO_ID = "marketing.sputnik-dao.near"
OTHER_DAO_ID = "creative.sputnik-dao.near"


@pytest.fixture
def seeded_chain(near_client, indexer, raw_proposal):
    """Two DAOs on the fake chain, tracked by the indexer"""
    near_client.add_dao(
        DAO_ID,
        [
            raw_proposal(0, status="Approved", votes={"a.near": "Approve", "b.near": "Approve"},
                         submission_time="1700000000000000000"),
            raw_proposal(1, status="Rejected", votes={"a.near": "Reject"},
                         submission_time="1700000100000000000", description="short"),
            raw_proposal(2, status="InProgress", votes={},
                         submission_time="1700000200000000000"),
        ],
        ["a.near", "b.near", "c.near", "d.near"],
    )
    near_client.add_dao(OTHER_DAO_ID, [], ["z.near"])
    indexer.tracked_daos = [DAO_ID, OTHER_DAO_ID]
    return near_client


class TestHealthEndpoint:
    """Tests for service-level endpoints"""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert "network" in data

    @pytest.mark.asyncio
    async def test_root_lists_endpoints(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 200
        endpoints = response.json()["endpoints"]
        assert "GET /api/v1/daos" in endpoints
        assert "POST /api/v1/sync/refresh" in endpoints


class TestDAOEndpoints:
    """Tests for DAO endpoints"""

    @pytest.mark.asyncio
    async def test_list_daos_empty(self, client: AsyncClient):
        response = await client.get("/api/v1/daos")
        assert response.status_code == 200
        assert response.json() == {"daos": [], "total_count": 0, "network_gri": 0}

    @pytest.mark.asyncio
    async def test_unknown_dao_returns_404(self, client: AsyncClient):
        for path in ("overview", "proposals", "gri", "proposal/0"):
            response = await client.get(f"/api/v1/dao/unknown.sputnik-dao.near/{path}")
            assert response.status_code == 404
            assert response.json()["detail"] == "DAO not found"

    @pytest.mark.asyncio
    async def test_list_daos_after_indexing(self, client: AsyncClient, seeded_chain, indexer):
        await indexer.run_index_pass()

        response = await client.get("/api/v1/daos")
        assert response.status_code == 200
        data = response.json()

        assert data["total_count"] == 2
        by_id = {d["id"]: d for d in data["daos"]}
        assert by_id[DAO_ID]["name"] == "Marketing"
        assert by_id[DAO_ID]["member_count"] == 4
        assert by_id[DAO_ID]["proposal_count"] == 3
        assert by_id[OTHER_DAO_ID]["gri_score"] == 10.0
        expected_mean = round((by_id[DAO_ID]["gri_score"] + 10.0) / 2, 1)
        assert data["network_gri"] == pytest.approx(expected_mean, abs=0.11)

    @pytest.mark.asyncio
    async def test_overview(self, client: AsyncClient, seeded_chain, indexer):
        await indexer.run_index_pass()

        response = await client.get(f"/api/v1/dao/{DAO_ID}/overview")
        assert response.status_code == 200
        data = response.json()

        assert data["dao"]["id"] == DAO_ID
        assert data["member_count"] == 4
        assert [p["id"] for p in data["recent_proposals"]] == [2, 1, 0]
        assert set(data["gri"]["breakdown"]) == {
            "participation", "execution_reliability", "governance_latency", "transparency",
        }
        assert data["gri"]["version"] == "1.0"

    @pytest.mark.asyncio
    async def test_gri_breakdown(self, client: AsyncClient, seeded_chain, indexer):
        await indexer.run_index_pass()

        response = await client.get(f"/api/v1/dao/{DAO_ID}/gri")
        assert response.status_code == 200
        data = response.json()
        breakdown = data["gri"]["breakdown"]

        # 3 voters over 3 proposals, 4 members
        assert breakdown["participation"]["score"] == 25.0
        # 1 approved, 0 failed, 0 expired
        assert breakdown["execution_reliability"]["score"] == 100.0
        assert breakdown["governance_latency"]["score"] == 100.0
        # 2 of 3 descriptions are detailed
        assert breakdown["transparency"]["score"] == pytest.approx(66.7)
        # 10 + 30 + 20 + 6.67
        assert data["gri"]["overall"] == 66.7
        assert data["grade"] == "Good"
        assert data["dao_name"] == "Marketing"
        assert data["proposal_count"] == 3

    @pytest.mark.asyncio
    async def test_proposals_filtered_by_status(self, client: AsyncClient, seeded_chain, indexer):
        await indexer.run_index_pass()

        response = await client.get(f"/api/v1/dao/{DAO_ID}/proposals", params={"status": "Approved"})
        assert response.status_code == 200
        data = response.json()

        assert data["total_count"] == 1
        proposal = data["proposals"][0]
        assert proposal["id"] == 0
        assert proposal["kind_type"] == "Transfer"
        assert proposal["submission_time"] == "1700000000000000000"
        assert proposal["vote_count"] == {"approve": 2, "reject": 0, "remove": 0}

    @pytest.mark.asyncio
    async def test_proposals_unfiltered_newest_first(self, client: AsyncClient, seeded_chain, indexer):
        await indexer.run_index_pass()

        response = await client.get(f"/api/v1/dao/{DAO_ID}/proposals")
        assert [p["id"] for p in response.json()["proposals"]] == [2, 1, 0]

    @pytest.mark.asyncio
    async def test_proposal_detail(self, client: AsyncClient, seeded_chain, indexer):
        await indexer.run_index_pass()

        response = await client.get(f"/api/v1/dao/{DAO_ID}/proposal/0")
        assert response.status_code == 200
        data = response.json()

        assert data["voter_count"] == 2
        assert data["participation_rate"] == 50.0
        assert data["member_count"] == 4
        assert data["proposal"]["votes"] == {"a.near": "Approve", "b.near": "Approve"}

    @pytest.mark.asyncio
    async def test_unknown_proposal_returns_404(self, client: AsyncClient, seeded_chain, indexer):
        await indexer.run_index_pass()

        response = await client.get(f"/api/v1/dao/{DAO_ID}/proposal/99")
        assert response.status_code == 404
        assert response.json()["detail"] == "Proposal not found"


class TestNetworkEndpoints:
    """Tests for network-wide endpoints"""

    @pytest.mark.asyncio
    async def test_health_empty(self, client: AsyncClient):
        response = await client.get("/api/v1/network/health")
        assert response.status_code == 200
        data = response.json()

        assert data["median_gri"] == 0
        assert data["active_daos"] == 0
        assert data["total_proposals"] == 0
        assert len(data["participation_trend"]) == 7
        assert data["trend_is_mock"] is True

    @pytest.mark.asyncio
    async def test_health_after_indexing(self, client: AsyncClient, seeded_chain, indexer):
        await indexer.run_index_pass()

        data = (await client.get("/api/v1/network/health")).json()

        assert data["total_proposals"] == 3
        assert data["total_votes"] == 3
        # Seeded proposals date from 2023, outside the activity window
        assert data["active_daos"] == 0
        assert data["inactive_daos"] == 2

    @pytest.mark.asyncio
    async def test_status_before_first_pass(self, client: AsyncClient):
        response = await client.get("/api/v1/network/status")
        assert response.status_code == 200
        data = response.json()

        assert data["status"] == "healthy"
        assert data["dao_count"] == 0
        assert data["cache"]["last_updated"] is None
        assert data["cache"]["refreshing"] is False

    @pytest.mark.asyncio
    async def test_status_after_pass(self, client: AsyncClient, seeded_chain, indexer):
        await indexer.run_index_pass()

        data = (await client.get("/api/v1/network/status")).json()

        assert data["dao_count"] == 2
        assert data["cache"]["daos_cached"] == 2
        assert data["cache"]["last_updated"] is not None
        assert data["cache"]["last_pass"]["daos_indexed"] == 2


class TestSyncEndpoints:
    """Tests for manual refresh"""

    @pytest.mark.asyncio
    async def test_refresh_runs_a_pass(self, client: AsyncClient, seeded_chain, indexer):
        response = await client.post("/api/v1/sync/refresh")
        assert response.status_code == 200
        assert response.json()["scheduled"] is True

        # Background tasks finish before the in-process transport returns
        assert indexer.last_pass is not None
        assert indexer.last_pass.indexed == [DAO_ID, OTHER_DAO_ID]

    @pytest.mark.asyncio
    async def test_refresh_skipped_while_running(self, client: AsyncClient, indexer):
        indexer.running = True
        response = await client.post("/api/v1/sync/refresh")

        assert response.json() == {"message": "Refresh already in progress", "scheduled": False}

    @pytest.mark.asyncio
    async def test_sync_status(self, client: AsyncClient):
        response = await client.get("/api/v1/sync/status")
        assert response.status_code == 200
        assert response.json()["running"] is False

"""Network health API endpoints"""
from fastapi import APIRouter, Depends

from gri.api.deps import get_indexer, get_store
from gri.config import get_settings
from gri.schemas.network import CacheStatus, NetworkHealthResponse, NetworkStatusResponse
from gri.services.aggregation import DAOSnapshot, mock_participation_trend, summarize_network
from gri.services.gri_engine import compute_gri
from gri.services.indexer import DAOIndexer
from gri.services.store import DAOStore

router = APIRouter()
settings = get_settings()


@router.get("/health", response_model=NetworkHealthResponse)
async def network_health(
    store: DAOStore = Depends(get_store),
    indexer: DAOIndexer = Depends(get_indexer),
):
    """Network-wide governance health"""
    snapshots = []
    for dao in await store.list_daos():
        proposals = await store.list_proposals(dao.id)
        gri = compute_gri(proposals, indexer.policies.get(dao.id), dao.member_count)
        snapshots.append(DAOSnapshot(dao_id=dao.id, gri=gri.overall, proposals=proposals))

    summary = summarize_network(snapshots)

    return NetworkHealthResponse(
        **summary.to_dict(),
        participation_trend=mock_participation_trend(7),
    )


@router.get("/status", response_model=NetworkStatusResponse)
async def network_status(
    store: DAOStore = Depends(get_store),
    indexer: DAOIndexer = Depends(get_indexer),
):
    """API status and cache info"""
    dao_count = await store.count_daos()
    last_completed = indexer.last_completed_at

    return NetworkStatusResponse(
        status="healthy",
        dao_count=dao_count,
        cache=CacheStatus(
            last_updated=last_completed.isoformat() if last_completed else None,
            daos_cached=dao_count,
            refreshing=indexer.running,
            last_pass=indexer.last_pass.to_dict() if indexer.last_pass else None,
        ),
        version=settings.app_version,
    )

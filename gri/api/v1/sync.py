"""Sync API endpoints"""
from fastapi import APIRouter, BackgroundTasks, Depends

from gri.api.deps import get_indexer, get_scheduler
from gri.schemas.network import RefreshResponse
from gri.services.indexer import DAOIndexer
from gri.services.refresh_scheduler import RefreshScheduler

router = APIRouter()


@router.post("/refresh", response_model=RefreshResponse)
async def trigger_refresh(
    background_tasks: BackgroundTasks,
    indexer: DAOIndexer = Depends(get_indexer),
    scheduler: RefreshScheduler = Depends(get_scheduler),
):
    """
    Run an index pass in the background.
    Returns immediately; poll /network/status for progress.
    """
    if indexer.running:
        return RefreshResponse(message="Refresh already in progress", scheduled=False)

    background_tasks.add_task(scheduler.refresh_now)
    return RefreshResponse(message="Refresh scheduled", scheduled=True)


@router.get("/status")
async def sync_status(indexer: DAOIndexer = Depends(get_indexer)):
    """Get indexer sync status"""
    return indexer.get_sync_status()

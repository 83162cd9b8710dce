"""API v1 router aggregation"""
from fastapi import APIRouter

from gri.api.v1 import daos, network, sync

api_router = APIRouter()

api_router.include_router(daos.router, tags=["DAOs"])
api_router.include_router(network.router, prefix="/network", tags=["Network"])
api_router.include_router(sync.router, prefix="/sync", tags=["Sync"])

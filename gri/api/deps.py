"""Request dependencies resolving the services wired up in the app lifespan"""
from fastapi import Request

from gri.services.indexer import DAOIndexer
from gri.services.refresh_scheduler import RefreshScheduler
from gri.services.store import DAOStore


def get_store(request: Request) -> DAOStore:
    return request.app.state.store


def get_indexer(request: Request) -> DAOIndexer:
    return request.app.state.indexer


def get_scheduler(request: Request) -> RefreshScheduler:
    return request.app.state.scheduler

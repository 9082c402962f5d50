"""API routes."""
from enum import Enum
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from requestdesk.api.dependencies import (
    get_current_user,
    get_request_manager,
    get_tmdb_service,
    require_permission,
)
from requestdesk.api.models import (
    CreateRequestBody,
    DiagnosticsResponse,
    ErrorResponse,
    MediaRequestResponse,
)
from requestdesk.core.permissions import Permission
from requestdesk.core.request_manager import RequestManager
from requestdesk.db.database import get_db
from requestdesk.db.models import User
from requestdesk.services.tmdb import TmdbService, TmdbError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/request", tags=["request"])
diagnostics_router = APIRouter(prefix="/api/v1")


class StatusAction(str, Enum):
    PENDING = "pending"
    APPROVE = "approve"
    DECLINE = "decline"


@router.get("/", response_model=List[MediaRequestResponse])
async def list_requests(
    user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    """Liste les 20 dernières demandes visibles par l'utilisateur."""
    requests = manager.list_requests(user)
    return [MediaRequestResponse.model_validate(r) for r in requests]


@router.post(
    "/",
    response_model=MediaRequestResponse,
    status_code=201,
    responses={500: {"model": ErrorResponse}},
)
async def create_request(
    body: CreateRequestBody,
    user: User = Depends(require_permission(Permission.REQUEST)),
    manager: RequestManager = Depends(get_request_manager),
):
    """Crée une demande (film, ou saisons d'une série)."""
    request = await manager.create_request(user, body.media_type, body.media_id, body.seasons)
    return MediaRequestResponse.model_validate(request)


@router.get("/{request_id}", response_model=MediaRequestResponse, responses={404: {"model": ErrorResponse}})
async def get_request(
    request_id: int,
    user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    return MediaRequestResponse.model_validate(manager.get_request(request_id))


@router.delete(
    "/{request_id}",
    response_model=MediaRequestResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_request(
    request_id: int,
    user: User = Depends(get_current_user),
    manager: RequestManager = Depends(get_request_manager),
):
    """Supprime une demande et renvoie son état avant suppression."""
    request = manager.delete_request(user, request_id)
    return MediaRequestResponse.model_validate(request)


@router.get("/{request_id}/{status}", response_model=MediaRequestResponse, responses={404: {"model": ErrorResponse}})
async def update_request_status(
    request_id: int,
    status: StatusAction,
    user: User = Depends(require_permission(Permission.MANAGE_REQUESTS)),
    manager: RequestManager = Depends(get_request_manager),
):
    """Change le statut d'une demande (pending, approve, decline)."""
    request = manager.update_status(user, request_id, status.value)
    return MediaRequestResponse.model_validate(request)


@diagnostics_router.get("/diagnostics", response_model=DiagnosticsResponse)
async def diagnostics(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    tmdb: Optional[TmdbService] = Depends(get_tmdb_service),
):
    """Vérifie la base de données et la connexion à TMDB."""
    results = {
        "database": {"connected": False, "error": None},
        "tmdb": {"connected": False, "error": None},
    }

    try:
        db.execute(text("SELECT 1"))
        results["database"]["connected"] = True
    except Exception as e:
        results["database"]["error"] = str(e)

    if tmdb is None:
        results["tmdb"]["error"] = "TMDB configuration not found"
    else:
        try:
            await tmdb.ping()
            results["tmdb"]["connected"] = True
        except TmdbError as e:
            results["tmdb"]["error"] = str(e)

    return DiagnosticsResponse(**results)

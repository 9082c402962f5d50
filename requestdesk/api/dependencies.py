"""FastAPI dependencies: authentication, permissions and services."""
from typing import Optional
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from requestdesk.config import get_config
from requestdesk.core.permissions import Permission
from requestdesk.core.request_manager import RequestManager
from requestdesk.db.database import get_db
from requestdesk.db.models import User
from requestdesk.services.tmdb import TmdbService


def get_current_user(
    x_api_key: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """Résout l'utilisateur à partir de l'en-tête X-Api-Key."""
    user = None
    if x_api_key:
        user = db.query(User).filter(User.api_key == x_api_key).first()
    if user is None:
        raise HTTPException(status_code=401, detail="You do not have access to this resource")
    return user


def require_permission(permission: Permission):
    """Dépendance qui exige une permission (403 sinon)."""

    def checker(user: User = Depends(get_current_user)) -> User:
        if not user.has_permission(permission):
            raise HTTPException(status_code=403, detail="You do not have permission to access this endpoint")
        return user

    return checker


def get_tmdb_service() -> Optional[TmdbService]:
    """TMDB client, or None when the tmdb section is missing from the config."""
    config = get_config()
    if not config.tmdb:
        return None
    return TmdbService(config.tmdb)


def get_request_manager(
    db: Session = Depends(get_db),
    tmdb: Optional[TmdbService] = Depends(get_tmdb_service),
) -> RequestManager:
    return RequestManager(db, tmdb=tmdb, page_size=get_config().requests.page_size)

"""Pydantic models for API requests/responses."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from datetime import datetime

from requestdesk.db.models import MediaRequestStatus, MediaStatus


class ApiModel(BaseModel):
    """JSON en camelCase, construit depuis les objets SQLAlchemy."""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class CreateRequestBody(ApiModel):
    media_type: str  # validé par RequestManager (500 "Invalid media type")
    media_id: int
    seasons: Optional[List[int]] = None


class UserResponse(ApiModel):
    id: int
    email: str
    username: Optional[str]
    permissions: int
    created_at: datetime


class MediaResponse(ApiModel):
    id: int
    tmdb_id: int
    tvdb_id: Optional[int]
    media_type: str
    status: MediaStatus
    created_at: datetime
    updated_at: datetime


class SeasonRequestResponse(ApiModel):
    id: int
    season_number: int
    status: MediaRequestStatus
    created_at: datetime
    updated_at: datetime


class MediaRequestResponse(ApiModel):
    id: int
    type: str
    status: MediaRequestStatus
    media: Optional[MediaResponse] = None
    requested_by: Optional[UserResponse] = None
    modified_by: Optional[UserResponse] = None
    seasons: List[SeasonRequestResponse] = []
    created_at: datetime
    updated_at: datetime


class ErrorResponse(BaseModel):
    status: int
    message: str


class DiagnosticsResponse(BaseModel):
    database: Dict[str, Any]
    tmdb: Dict[str, Any]

"""SQLAlchemy models for database."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime
from enum import Enum, IntEnum

from requestdesk.core.permissions import Permission, has_permission

Base = declarative_base()


class MediaType(str, Enum):
    MOVIE = "movie"
    TV = "tv"


class MediaStatus(IntEnum):
    UNKNOWN = 1
    PENDING = 2
    PROCESSING = 3
    PARTIALLY_AVAILABLE = 4
    AVAILABLE = 5


class MediaRequestStatus(IntEnum):
    """Statut d'une demande. PENDING est la plus petite valeur."""
    PENDING = 0
    APPROVED = 1
    DECLINED = 2


class User(Base):
    """Utilisateur authentifié par clé API."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False)
    username = Column(String, nullable=True)
    api_key = Column(String, unique=True, nullable=False, index=True)
    permissions = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    requests = relationship(
        "MediaRequest", back_populates="requested_by", foreign_keys="MediaRequest.requested_by_id"
    )

    def has_permission(self, permission: Permission) -> bool:
        return has_permission(self.permissions or 0, permission)


class Media(Base):
    """Film ou série connu, identifié par son ID TMDB."""
    __tablename__ = "media"

    id = Column(Integer, primary_key=True, index=True)
    tmdb_id = Column(Integer, unique=True, nullable=False, index=True)
    tvdb_id = Column(Integer, nullable=True)
    media_type = Column(String, nullable=False)  # movie, tv
    status = Column(Integer, default=MediaStatus.UNKNOWN, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    requests = relationship("MediaRequest", back_populates="media", cascade="all, delete-orphan")


class MediaRequest(Base):
    """Demande d'un utilisateur pour un média."""
    __tablename__ = "media_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String, nullable=False)  # movie, tv
    status = Column(Integer, default=MediaRequestStatus.PENDING, nullable=False)
    media_id = Column(Integer, ForeignKey("media.id", ondelete="CASCADE"), nullable=False, index=True)
    requested_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    modified_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships (always loaded: the API serializes them, including after a delete)
    media = relationship("Media", back_populates="requests", lazy="selectin")
    requested_by = relationship(
        "User", back_populates="requests", foreign_keys=[requested_by_id], lazy="selectin"
    )
    modified_by = relationship("User", foreign_keys=[modified_by_id], lazy="selectin")
    seasons = relationship(
        "SeasonRequest",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="SeasonRequest.id",
        lazy="selectin",
    )


class SeasonRequest(Base):
    """Saison demandée, rattachée à une MediaRequest (séries uniquement)."""
    __tablename__ = "season_requests"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(Integer, ForeignKey("media_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    season_number = Column(Integer, nullable=False)
    status = Column(Integer, default=MediaRequestStatus.PENDING, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    request = relationship("MediaRequest", back_populates="seasons")

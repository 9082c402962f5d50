"""Gestion des demandes de médias (liste, création, lecture, suppression, statut)."""
from typing import List, Optional, Sequence, Union
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from requestdesk.core.exceptions import (
    NotFoundError,
    UnauthorizedError,
    ValidationFailure,
    UpstreamFailure,
)
from requestdesk.core.permissions import Permission
from requestdesk.db.models import (
    Media,
    MediaRequest,
    MediaRequestStatus,
    MediaStatus,
    MediaType,
    SeasonRequest,
    User,
)
from requestdesk.services.tmdb import TmdbService, TmdbError, TmdbMovieDetails, TmdbTvDetails

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20

STATUS_ACTIONS = {
    "pending": MediaRequestStatus.PENDING,
    "approve": MediaRequestStatus.APPROVED,
    "decline": MediaRequestStatus.DECLINED,
}


class RequestManager:
    """Orchestre permissions, TMDB et base de données pour les demandes."""

    def __init__(self, db: Session, tmdb: Optional[TmdbService] = None, page_size: int = DEFAULT_PAGE_SIZE):
        self.db = db
        self.tmdb = tmdb
        self.page_size = page_size

    def list_requests(self, user: User) -> List[MediaRequest]:
        """Les 20 dernières demandes (toutes si MANAGE_REQUESTS, sinon celles de l'utilisateur)."""
        query = self.db.query(MediaRequest)
        if not user.has_permission(Permission.MANAGE_REQUESTS):
            query = query.filter(MediaRequest.requested_by_id == user.id)
        return query.order_by(MediaRequest.id.desc()).limit(self.page_size).all()

    async def create_request(
        self,
        user: User,
        media_type: str,
        media_id: int,
        seasons: Optional[Sequence[int]] = None,
    ) -> MediaRequest:
        """Crée une demande de film ou de saisons de série."""
        try:
            media_type = MediaType(media_type)
        except ValueError:
            raise ValidationFailure("Invalid media type")

        tmdb_media = await self._fetch_metadata(media_type, media_id)
        initial_status = (
            MediaRequestStatus.APPROVED
            if user.has_permission(Permission.AUTO_APPROVE)
            else MediaRequestStatus.PENDING
        )

        try:
            media = self._get_or_create_media(tmdb_media, media_type)

            if media_type == MediaType.MOVIE:
                request = MediaRequest(
                    type=MediaType.MOVIE.value,
                    media=media,
                    requested_by=user,
                    status=initial_status,
                )
            else:
                final_seasons = self._unrequested_seasons(media, seasons or [])
                if not final_seasons:
                    raise ValidationFailure("No seasons available to request")

                request = MediaRequest(
                    type=MediaType.TV.value,
                    media=media,
                    requested_by=user,
                    status=initial_status,
                    seasons=[
                        SeasonRequest(season_number=sn, status=initial_status)
                        for sn in final_seasons
                    ],
                )

            self.db.add(request)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(request)
        logger.info(
            f"Request {request.id} created by user {user.id}: "
            f"{media_type.value} tmdb={media.tmdb_id} status={MediaRequestStatus(request.status).name}"
        )
        return request

    def get_request(self, request_id: int) -> MediaRequest:
        """Récupère une demande avec son auteur et son dernier modificateur."""
        request = self.db.get(MediaRequest, request_id)
        if request is None:
            raise NotFoundError("Request not found")
        return request

    def delete_request(self, user: User, request_id: int) -> MediaRequest:
        """Supprime une demande (MANAGE_REQUESTS, ou son auteur tant qu'elle est en attente)."""
        request = self.get_request(request_id)

        is_owner = request.requested_by_id == user.id
        if not user.has_permission(Permission.MANAGE_REQUESTS) and (
            not is_owner or request.status != MediaRequestStatus.PENDING
        ):
            raise UnauthorizedError("You do not have permission to remove this request")

        media = request.media
        self.db.delete(request)
        self.db.commit()
        if media is not None:
            # Drop the cached collection that still lists the deleted request
            self.db.expire(media, ["requests"])
        logger.info(f"Request {request_id} deleted by user {user.id}")
        return request

    def update_status(self, user: User, request_id: int, action: Union[str, MediaRequestStatus]) -> MediaRequest:
        """Change le statut de la demande parente (les saisons ne sont pas modifiées)."""
        request = self.get_request(request_id)

        if isinstance(action, MediaRequestStatus):
            new_status = action
        else:
            try:
                new_status = STATUS_ACTIONS[action]
            except KeyError:
                raise ValidationFailure(f"Invalid status: {action}")

        request.status = new_status
        request.modified_by = user
        self.db.commit()
        self.db.refresh(request)
        logger.info(f"Request {request_id} set to {new_status.name} by user {user.id}")
        return request

    async def _fetch_metadata(
        self, media_type: MediaType, media_id: int
    ) -> Union[TmdbMovieDetails, TmdbTvDetails]:
        if self.tmdb is None:
            raise UpstreamFailure("TMDB is not configured")
        try:
            if media_type == MediaType.MOVIE:
                return await self.tmdb.get_movie(media_id)
            return await self.tmdb.get_tv_show(media_id)
        except TmdbError as e:
            logger.warning(f"Metadata lookup failed for {media_type.value} {media_id}: {e}")
            raise UpstreamFailure(str(e))

    def _get_or_create_media(
        self, tmdb_media: Union[TmdbMovieDetails, TmdbTvDetails], media_type: MediaType
    ) -> Media:
        media = self.db.query(Media).filter(Media.tmdb_id == tmdb_media.id).first()
        if media is not None:
            return media

        media = Media(
            tmdb_id=tmdb_media.id,
            tvdb_id=tmdb_media.external_ids.tvdb_id,
            media_type=media_type.value,
            status=MediaStatus.PENDING,
        )
        self.db.add(media)
        try:
            self.db.flush()
        except IntegrityError:
            # Another request inserted the same tmdb_id first. Nothing else has
            # been written in this transaction yet, so a full rollback is safe.
            self.db.rollback()
            media = self.db.query(Media).filter(Media.tmdb_id == tmdb_media.id).one()
        return media

    def _unrequested_seasons(self, media: Media, requested: Sequence[int]) -> List[int]:
        # Read from the table, not media.requests: the cached collection can
        # still hold requests deleted earlier in this session
        existing = {
            season_number
            for (season_number,) in self.db.query(SeasonRequest.season_number)
            .join(MediaRequest, SeasonRequest.request_id == MediaRequest.id)
            .filter(MediaRequest.media_id == media.id)
        }
        final_seasons: List[int] = []
        for season_number in requested:
            if season_number not in existing and season_number not in final_seasons:
                final_seasons.append(season_number)
        return final_seasons

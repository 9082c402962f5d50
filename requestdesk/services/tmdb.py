"""TMDB API client."""
import httpx
from typing import List, Dict, Optional
from pydantic import BaseModel, Field, ValidationError

from requestdesk.config import get_config, TmdbConfig
from requestdesk.utils.http_client import RobustHTTPClient, get_http_client


class TmdbError(Exception):
    """Échec d'un appel TMDB (réseau, statut HTTP ou réponse invalide)."""


class TmdbExternalIds(BaseModel):
    imdb_id: Optional[str] = None
    tvdb_id: Optional[int] = None


class TmdbSeason(BaseModel):
    season_number: int
    name: Optional[str] = None
    episode_count: Optional[int] = None
    air_date: Optional[str] = None


class TmdbMovieDetails(BaseModel):
    id: int
    title: str
    original_title: Optional[str] = None
    release_date: Optional[str] = None
    overview: Optional[str] = None
    external_ids: TmdbExternalIds = Field(default_factory=TmdbExternalIds)


class TmdbTvDetails(BaseModel):
    id: int
    name: str
    original_name: Optional[str] = None
    first_air_date: Optional[str] = None
    overview: Optional[str] = None
    number_of_seasons: Optional[int] = None
    seasons: List[TmdbSeason] = Field(default_factory=list)
    external_ids: TmdbExternalIds = Field(default_factory=TmdbExternalIds)


class TmdbService:
    """Service pour interagir avec TMDB."""

    service_name = "tmdb"

    def __init__(self, tmdb_config: Optional[TmdbConfig] = None, http_client: Optional[RobustHTTPClient] = None):
        if tmdb_config is None:
            tmdb_config = get_config().tmdb
        if not tmdb_config:
            raise ValueError("TMDB configuration not found")
        self.base_url = tmdb_config.url.rstrip("/")
        self.api_key = tmdb_config.api_key
        self.language = tmdb_config.language
        self.timeout = tmdb_config.timeout
        self.http_client = http_client or get_http_client()

    def _get_params(self) -> Dict[str, str]:
        """Get query parameters shared by every call."""
        return {
            "api_key": self.api_key,
            "language": self.language,
            "append_to_response": "external_ids",
        }

    async def _get(self, path: str) -> dict:
        try:
            response = await self.http_client.get_async(
                f"{self.base_url}{path}",
                service_name=self.service_name,
                params=self._get_params(),
                timeout=self.timeout,
            )
            return response.json()
        except httpx.HTTPError as e:
            raise TmdbError(f"Error fetching {path} from TMDB: {str(e)}")
        except ValueError as e:
            raise TmdbError(f"Invalid JSON from TMDB for {path}: {str(e)}")

    async def get_movie(self, movie_id: int) -> TmdbMovieDetails:
        """Récupère un film et ses IDs externes."""
        data = await self._get(f"/movie/{movie_id}")
        try:
            return TmdbMovieDetails.model_validate(data)
        except ValidationError as e:
            raise TmdbError(f"Unexpected movie payload from TMDB: {str(e)}")

    async def get_tv_show(self, tv_id: int) -> TmdbTvDetails:
        """Récupère une série et ses IDs externes."""
        data = await self._get(f"/tv/{tv_id}")
        try:
            return TmdbTvDetails.model_validate(data)
        except ValidationError as e:
            raise TmdbError(f"Unexpected TV payload from TMDB: {str(e)}")

    async def ping(self) -> bool:
        """Vérifie la connexion (utilisé par /diagnostics)."""
        await self._get("/configuration")
        return True

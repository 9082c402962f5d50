"""FastAPI main application."""
from contextlib import asynccontextmanager
from typing import Optional
import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from requestdesk.config import init_config, Config
from requestdesk.core.exceptions import RequestDeskError
from requestdesk.db.database import init_db
from requestdesk.api.routes import router, diagnostics_router

# Setup logging (level adjusted from config once loaded)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def find_config_path() -> Optional[str]:
    """Support both /config/config.yaml (Docker) and ./config/config.yaml (local dev)."""
    possible_paths = [
        os.getenv("CONFIG_PATH"),
        "/config/config.yaml",
        "./config/config.yaml",
        os.path.join(os.path.dirname(__file__), "..", "config", "config.yaml"),
    ]
    for path in possible_paths:
        if path and os.path.exists(path):
            return path
    return None


def bootstrap() -> Config:
    """Load configuration and open the database."""
    config_path = find_config_path()
    if config_path:
        logger.info(f"Loading configuration from: {config_path}")
    else:
        logger.warning("No config.yaml found, using defaults and environment variables")
    config = init_config(config_path)
    logging.getLogger().setLevel(config.app.log_level.upper())

    if not config.tmdb:
        logger.warning("TMDB is not configured: creating requests will fail")

    data_dir = os.getenv("DATA_DIR", config.app.data_dir)
    try:
        init_db(data_dir, config.users)
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        logger.error(f"Data directory: {data_dir}")
        logger.error("Please ensure the data volume is mounted and writable (-v ./data:/data)")
        raise
    return config


@asynccontextmanager
async def lifespan(app: FastAPI):
    bootstrap()
    yield


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status_code, "message": message})


async def request_desk_error_handler(request: Request, exc: RequestDeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(exc.status_code, detail)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return error_response(422, "Validation error")
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return error_response(422, f"Validation error: {location}: {first.get('msg', 'invalid value')}")


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(f"Database error in {request.method} {request.url}")
    return error_response(500, str(exc))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions with detailed logging."""
    logger.exception(f"Unhandled exception in {request.method} {request.url}")
    return error_response(500, f"Internal server error: {str(exc)}")


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(title="Request Desk", version="1.0.0", lifespan=lifespan if use_lifespan else None)

    app.include_router(router)
    app.include_router(diagnostics_router)

    app.add_exception_handler(RequestDeskError, request_desk_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Request Desk API"}

    return app


app = create_app()

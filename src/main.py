import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv


# Load .env FIRST before any other imports that might need env vars
ROOT_DIR = Path(__file__).parent.parent
load_dotenv(ROOT_DIR / ".env")

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth.middleware import AuthInjectionMiddleware
from .config.logging import setup_logging
from .config.settings import get_settings
from .database.engine import engine
from .exceptions import DomainError
from .formations.models import Formation  # noqa: F401
from .formations.router import router as formations_router
from .middleware.error_handlers import (
    handle_database_errors,
    handle_domain_errors,
    handle_http_exceptions,
    handle_rate_limit_errors,
    handle_request_validation_errors,
    handle_storage_errors,
    handle_unexpected_errors,
)
from .middleware.security import SimpleSecurityMiddleware, limiter
from .organizations.models import Organization, OrganizationMember, Profile  # noqa: F401
from .progress.models import UserProgress  # noqa: F401
from .progress.router import router as progress_router
from .quizzes.models import Quiz, QuizAnswer, QuizQuestion, UserQuizResult  # noqa: F401
from .quizzes.router import router as quizzes_router
from .storage.exceptions import StorageError


# The model imports above (noqa: F401) register every table with SQLAlchemy
setup_logging()
logger = logging.getLogger(__name__)


def _register_routers(app: FastAPI) -> None:
    """Register all application routers.

    All three share /api/v1/formations; the static "/progress" and "/quiz/..."
    paths must be matched before "/{formation_id}".
    """
    app.include_router(progress_router)
    app.include_router(quizzes_router)
    app.include_router(formations_router)


async def _startup_database() -> None:
    """Check the database is reachable, with retry."""
    from sqlalchemy import text

    max_retries = 5
    retry_delay = 1  # seconds

    for attempt in range(max_retries):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection established")
            return
        except OperationalError:
            if attempt == max_retries - 1:
                logger.exception("Startup failed after %d attempts", max_retries)
                raise

            logger.warning(
                "Database connection attempt %d failed, retrying in %ds...",
                attempt + 1,
                retry_delay,
            )
            await asyncio.sleep(retry_delay)
            retry_delay *= 2


async def _shutdown_cleanup() -> None:
    logger.info("Starting graceful shutdown...")
    await engine.dispose()
    logger.info("Shutdown complete")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    await _startup_database()

    yield

    await _shutdown_cleanup()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    try:
        settings = get_settings()
    except Exception:
        logger.exception("Failed to load settings")
        raise

    if settings.AUTH_PROVIDER == "none" and settings.ENVIRONMENT == "production":
        msg = "Single-user mode (AUTH_PROVIDER='none') is not allowed in production"
        raise RuntimeError(msg)

    app = FastAPI(
        title="Formations API",
        description="Corporate training formations, quizzes and learner progress",
        version="0.1.0",
        debug=settings.DEBUG,
        lifespan=lifespan if settings.ENVIRONMENT != "test" else None,
    )

    # Last added runs first: CORS wraps everything so 401s still carry CORS headers
    app.add_middleware(AuthInjectionMiddleware)
    app.add_middleware(SimpleSecurityMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # When allow_credentials=True, allow_origins cannot be ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, handle_rate_limit_errors)

    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.add_exception_handler(DomainError, handle_domain_errors)
    app.add_exception_handler(StarletteHTTPException, handle_http_exceptions)
    app.add_exception_handler(StorageError, handle_storage_errors)
    app.add_exception_handler(SQLAlchemyError, handle_database_errors)
    app.add_exception_handler(Exception, handle_unexpected_errors)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Check application health status."""
        return {"status": "healthy"}

    _register_routers(app)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    from src.config import env

    host = env("API_HOST", "127.0.0.1")
    port = int(env("API_PORT", 8080))

    uvicorn.run(app, host=host, port=port)

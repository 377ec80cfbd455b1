import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import engine, get_db
from app.search.errors import SearchBackendError, SearchValidationError

logger = logging.getLogger(__name__)

settings = get_settings()
logging.getLogger("app").setLevel(settings.LOG_LEVEL.upper())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown events.

    The content tables are owned by the content management service, so
    nothing is created here.
    """
    logger.info("Content search API starting")
    yield
    # Shutdown: dispose the async engine connection pool
    await engine.dispose()


app = FastAPI(
    title="Content Search",
    description="Multilingual search and autocomplete over articles, categories and tags",
    version="0.1.0",
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


# --- Error handlers ---
@app.exception_handler(SearchValidationError)
async def search_validation_error_handler(request: Request, exc: SearchValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.message})


@app.exception_handler(SearchBackendError)
async def search_backend_error_handler(request: Request, exc: SearchBackendError) -> JSONResponse:
    logger.error("Search failed on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Same 500 body for failures nothing else translated (e.g. connection errors)."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# --- Router includes ---
from app.api.search import router as search_router  # noqa: E402

app.include_router(search_router, prefix="/api")


@app.get("/api/health", tags=["health"])
async def health_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:  # noqa: B008
    """Health check endpoint.

    Verifies the API is running and the content store answers queries.
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable", exc_info=True)
        return JSONResponse(status_code=503, content={"status": "error", "db": "disconnected"})
    return JSONResponse(content={"status": "ok", "db": "connected"})

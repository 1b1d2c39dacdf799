import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deckmender.api import (
    analysis_router,
    collection_router,
    decks_router,
    health_router,
)
from deckmender.config import settings
from deckmender.db.database import init_db
from deckmender.models.failure import FailureResponse, KnownError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("deckmender"),
    lifespan=lifespan,
)

app.include_router(analysis_router)
app.include_router(collection_router)
app.include_router(decks_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Render a known failure as {"failure": FailureDetail}."""
    logger.info(
        "known_failure",
        extra={"kind": exc.kind.value, "status_code": exc.status_code, "detail": exc.detail},
    )
    body = FailureResponse(failure=exc.to_detail())
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))

from __future__ import annotations
import time
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.logging_setup import configure_logging
from app.routes.system import router as system_router
from app.routes.campaigns import router as campaigns_router
from app.routes.participations import router as participations_router
from app.routes.submissions import router as submissions_router
from app.services.errors import LifecycleError
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha,
             strict_window_order=settings.strict_window_order, max_ranked_positions=settings.max_ranked_positions)
    yield
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API: campaign registration, project submission and grading",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system_router)
app.include_router(campaigns_router)
app.include_router(participations_router)
app.include_router(submissions_router)

@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    # Conflicts mean the client view is stale: re-fetch participation-status, don't replay.
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.middleware("http")
async def request_context(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid, method=request.method, path=request.url.path)
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        log.info("request_finished", status=response.status_code,
                 duration_ms=round((time.perf_counter() - started) * 1000, 1))
        return response
    finally:
        structlog.contextvars.clear_contextvars()

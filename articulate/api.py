"""FastAPI app with job submission, polling, and health endpoints.

Jobs run in the background on the server's event loop; clients poll
``GET /jobs/{job_id}`` until the status is terminal.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from fastapi import Depends, FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .clients import AssistClient
from .config import settings
from .errors import JobNotFoundError
from .jobs import JobStore, generate_job_id, run_sweeper
from .logging_config import setup_logging
from .models import Job, JobStatus
from .pipelines.matching import MatchingOrchestrator

logger = logging.getLogger(__name__)


# Pydantic request/response models
class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: str | None = None


class CreateJobRequest(CamelModel):
    """Articulation search request."""
    institution_name: str = Field(min_length=1)
    major: str = Field(min_length=1)
    course: str = Field(min_length=1)


class CreateJobResponse(CamelModel):
    """Accepted job response."""
    job_id: str
    status: JobStatus
    message: str


class MatchResultDTO(CamelModel):
    """Single articulation match."""
    institution_name: str
    is_articulated: bool
    articulated_text: str | None = None
    artifact_key: str
    error: str | None = None


class JobResponse(CamelModel):
    """Current state of a job."""
    id: str
    status: JobStatus
    progress: str
    matches: list[MatchResultDTO] = Field(default_factory=list)
    error: str | None = None
    total_processed: int
    matched_count: int
    summary: str | None = None
    created_at: datetime
    completed_at: datetime | None = None


def _job_to_response(job: Job) -> JobResponse:
    return JobResponse(
        id=job.id,
        status=job.status,
        progress=job.progress,
        matches=[
            MatchResultDTO(
                institution_name=m.institution_name,
                is_articulated=m.is_articulated,
                articulated_text=m.articulated_text,
                artifact_key=m.artifact_key,
                error=m.error,
            )
            for m in job.matches
        ],
        error=job.error,
        total_processed=job.total_processed,
        matched_count=job.matched_count,
        summary=job.summary,
        created_at=job.created_at,
        completed_at=job.completed_at,
    )


# Dependencies
@lru_cache(maxsize=1)
def get_job_store() -> JobStore:
    return JobStore()


@lru_cache(maxsize=1)
def get_assist_client() -> AssistClient:
    return AssistClient()


@lru_cache(maxsize=1)
def get_orchestrator() -> MatchingOrchestrator:
    return MatchingOrchestrator(get_job_store(), get_assist_client())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    # Startup
    setup_logging()
    logger.info("Application starting up")
    sweeper = asyncio.create_task(
        run_sweeper(
            get_job_store(),
            interval=settings.jobs.sweep_interval_seconds,
            retention=timedelta(seconds=settings.jobs.retention_seconds),
        ),
        name="job-sweeper",
    )

    yield

    # Shutdown
    logger.info("Application shutting down")
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    orchestrator = get_orchestrator()
    if orchestrator.in_flight:
        logger.info(f"Waiting for {orchestrator.in_flight} in-flight job(s)")
    await orchestrator.drain()
    await get_assist_client().aclose()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Find partner institutions whose courses articulate to a target course",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request, exc: RequestValidationError):
    """Reject incomplete job requests with 400."""
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    logger.info(f"Rejected request to {request.url.path}: invalid {', '.join(fields) or 'body'}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="validation_error",
            detail="institutionName, major, and course are required",
        ).model_dump(),
    )


@app.exception_handler(JobNotFoundError)
async def job_not_found_handler(request, exc: JobNotFoundError):
    """Handle polling of unknown job ids."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(
            error="job_not_found",
            detail=str(exc),
        ).model_dump(),
    )


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.version,
        "endpoints": {
            "health": "/health",
            "create_job": "/jobs",
            "get_job": "/jobs/{job_id}",
            "docs": "/docs",
        },
    }


@app.post("/jobs", response_model=CreateJobResponse)
async def create_job(
    request: CreateJobRequest,
    store: JobStore = Depends(get_job_store),
    orchestrator: MatchingOrchestrator = Depends(get_orchestrator),
) -> CreateJobResponse:
    """Start an articulation search and return its job id immediately."""
    job_id = generate_job_id()
    store.create(job_id)
    orchestrator.start(job_id, request.institution_name, request.major, request.course)

    logger.info(f"Accepted job {job_id} for {request.course} ({request.major}, {request.institution_name})")

    return CreateJobResponse(
        job_id=job_id,
        status=JobStatus.PROCESSING,
        message="Articulation search started",
    )


@app.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, store: JobStore = Depends(get_job_store)) -> JobResponse:
    """Return the current state of a job."""
    return _job_to_response(store.get(job_id))

"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from approval_tracker.config import settings
from approval_tracker.database import Base, engine
from approval_tracker.errors import ApprovalError, ValidationError

# Import routers
from approval_tracker.routers import requests, actions, profiles, changes

# Import all models so Base.metadata knows about them
from approval_tracker.models.request import ApprovalRequest  # noqa: F401
from approval_tracker.models.action import ApprovalAction    # noqa: F401
from approval_tracker.models.profile import Profile          # noqa: F401
from approval_tracker.models.change_event import ChangeEvent  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Approval Queue",
    description="Approval-request tracker with a single FIFO queue of pending requests",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(profiles.router, prefix="/api/profiles", tags=["Profiles"])
app.include_router(requests.router, prefix="/api/requests", tags=["Requests"])
app.include_router(actions.router, prefix="/api/actions", tags=["Actions"])
app.include_router(changes.router, prefix="/api/changes", tags=["Changes"])


@app.exception_handler(ApprovalError)
async def approval_error_handler(request: Request, exc: ApprovalError):
    """Render domain errors as ``{"kind", "message"}`` with the matching status code."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters get the same ``{"kind", "message"}`` shape as domain errors."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    error = ValidationError(problems or "Invalid request")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}

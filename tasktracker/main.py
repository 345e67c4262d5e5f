import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import CORS_ORIGINS
from .database import create_tables
from .errors import TrackerError
from .logging_setup import setup_logging
from .routers import tasks, users
from .schemas.envelope import envelope

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Task Tracker API",
    description="Users and tasks with consistent assignments and generic list queries",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(users.router, prefix="/api", tags=["users"])
app.include_router(tasks.router, prefix="/api", tags=["tasks"])


def _describe_validation_errors(errors: List[Dict[str, Any]]) -> str:
    missing = [str(e["loc"][-1]) for e in errors if e.get("type") == "missing" and len(e["loc"]) > 1]
    if missing:
        return f"Missing required field(s): {', '.join(missing)}"
    first = errors[0]
    field = ".".join(str(part) for part in first["loc"][1:]) or "body"
    return f"Invalid value for {field}: {first['msg']}"


@app.exception_handler(TrackerError)
async def tracker_error_handler(request: Request, exc: TrackerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.data or exc.message)
    return JSONResponse(status_code=exc.status_code, content=envelope(exc.message, exc.data))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=envelope(_describe_validation_errors(exc.errors())))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=envelope("Internal server error", str(exc)))


# Create tables on startup
@app.on_event("startup")
def on_startup():
    setup_logging()
    create_tables()
    logger.info("Task Tracker API ready")


@app.get("/")
@app.get("/api")
def read_root():
    return envelope("Task Tracker API")


@app.get("/health")
def health_check():
    return {"status": "healthy"}

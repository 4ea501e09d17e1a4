"""
BGTS API -- Application entry point.

Run with:
    uvicorn bgts.main:app --reload

Then open http://localhost:8000/docs for the interactive Swagger UI.

This file:
  1. Configures logging
  2. Creates the FastAPI application
  3. Adds CORS middleware
  4. Mounts all route modules (penalty, sources, gifts, penalties, directory)
  5. Maps domain errors to HTTP responses
  6. Defines the health check endpoint
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bgts import config
from bgts.errors import InvalidTransitionError, NotFoundError, StorageError, ValidationError
from bgts.identity import seed_demo_directory
from bgts.models.schemas import HealthResponse
from bgts.routes import directory, gifts, penalties, penalty, sources
from bgts.store import GiftStore, get_store

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Honour test overrides so seeding lands in the store the routes will use.
    store = app.dependency_overrides.get(get_store, get_store)()
    if config.SEED_DEMO:
        seed_demo_directory(store)
    logger.info("%s %s started (%s, storage=%s)", config.SERVICE_NAME, config.VERSION, config.ENVIRONMENT, store.backend)
    yield


# ---------------------------------------------------------------------------
# Create the FastAPI application
#
# The metadata here powers the auto-generated Swagger docs at /docs.
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Bhutan Gift Transparency System",
    version=config.VERSION,
    description=(
        "Gift declarations for public servants under the Gift Rules 2017.\n\n"
        "---\n\n"
        "## Core Endpoints\n\n"
        "| Endpoint | Purpose |\n"
        "|----------|--------|\n"
        "| `POST /api/penalty` | Calculate the fine for a breach |\n"
        "| `POST /api/classify-source` | Check whether a giver is a prohibited source |\n"
        "| `POST /api/gifts` | Declare a gift |\n"
        "| `GET /api/gifts` | List declarations visible to the caller |\n"
        "| `POST /api/gifts/{id}/review` | Approve, return or forward a declaration |\n"
        "| `GET /api/penalties` | Penalty ledger |\n\n"
        "Declaration and penalty endpoints need `Authorization: Bearer <token>`."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(penalty.router)
app.include_router(sources.router)
app.include_router(gifts.router)
app.include_router(penalties.router)
app.include_router(directory.router)


# ---------------------------------------------------------------------------
# Error handling
#
# Validation and not-found errors carry enough detail to fix the request.
# Storage errors are logged where they happen and reach the client only as
# an opaque failure.
# ---------------------------------------------------------------------------

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    status_code = 409 if isinstance(exc, InvalidTransitionError) else 422
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": exc.message, "fields": exc.fields},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # loc is ("body" | "query" | "path", field, ...). Report the top-level field.
    fields = []
    for error in exc.errors():
        loc = error.get("loc", ())
        if len(loc) > 1 and str(loc[1]) not in fields:
            fields.append(str(loc[1]))
    message = f"Invalid fields: {', '.join(fields)}" if fields else "Invalid request body"
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": message, "fields": fields},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"success": False, "error": exc.message})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=500, content={"success": False, "error": "Storage failure"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and request.url.path.startswith("/api/") and exc.detail == "Not Found":
        return JSONResponse(status_code=404, content={"success": False, "error": "API endpoint not found"})
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


# ---------------------------------------------------------------------------
# Root and health check
# ---------------------------------------------------------------------------

@app.get("/", include_in_schema=False)
async def root():
    return RedirectResponse(url="/docs")


@app.get(
    "/api/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the current status of the API. Use this for uptime monitoring.",
    tags=["System"],
)
async def health(store: GiftStore = Depends(get_store)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        service=config.SERVICE_NAME,
        version=config.VERSION,
        timestamp=datetime.now(timezone.utc),
        environment=config.ENVIRONMENT,
        storage=store.backend,
    )

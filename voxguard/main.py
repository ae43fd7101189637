"""
VoxGuard API — Application entry point.

Bootstraps FastAPI, wires up middleware and rate limiting, and registers
route groups.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager

Run locally:
  uvicorn voxguard.main:app --reload --port 8000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from voxguard import __version__
from voxguard.core.config import settings
from voxguard.core.rate_limit import limiter
from voxguard.routes.health import router as health_router
from voxguard.routes.voice import DETECTION_PATH
from voxguard.routes.voice import router as voice_router
from voxguard.services.gateway import error_response, reject_request_body

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage startup and shutdown lifecycle.

    The gateway is stateless, so there is nothing to open or close; this
    only records the process lifecycle in the logs.
    """
    logger.info("Starting VoxGuard API (env: %s, mock AI: %s)", settings.environment, settings.ai_mock_mode)
    yield
    logger.info("Shutting down VoxGuard API")


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="VoxGuard API",
    description=(
        "Voice forensics gateway: human vs. synthetic speech classification "
        "with integrity-signed verdicts. All AI results are probabilistic — not guaranteed."
    ),
    version=__version__,
    lifespan=lifespan,
    # Disable docs in production to reduce attack surface
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Attach the limiter to app state so slowapi can find it.
# Routes opt-in with @limiter.limit(...) + request: Request parameter.
app.state.limiter = limiter


# ─── Error handlers ────────────────────────────────────────────────────────────
# The public detection endpoint only ever answers with signed envelopes, so
# framework-level rejections on that path are re-shaped and signed here.
# Every other route keeps the stock FastAPI / slowapi responses.
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    if request.url.path != DETECTION_PATH:
        return await request_validation_exception_handler(request, exc)
    body = reject_request_body(request.headers.get("x-api-key"), exc.errors())
    return JSONResponse(status_code=body["statusCode"], content=body)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    if request.url.path != DETECTION_PATH:
        return _rate_limit_exceeded_handler(request, exc)
    logger.warning("Rate limit exceeded on %s: %s", request.url.path, exc.detail)
    return JSONResponse(status_code=429, content=error_response(429, f"Rate limit exceeded: {exc.detail}"))

# ─── Middleware ─────────────────────────────────────────────────────────────────
# CORS: allow the forensics console to call the API.
# In production, restrict allow_origins to your actual domain.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(voice_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "VoxGuard API",
        "version": __version__,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }

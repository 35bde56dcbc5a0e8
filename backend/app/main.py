"""
EchoWrite - FastAPI Application

Main entry point for the backend API.
Provides endpoints for auth, anonymous sessions, conversations,
quota-metered post generation and subscriptions.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config.settings import settings
from app.infrastructure.db.database import DatabaseManager
from app.infrastructure.exceptions import EchoWriteError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info(f"EchoWrite Backend starting in {settings.environment} mode...")

    if settings.database_url:
        app.state.db = DatabaseManager.from_settings(settings)
        logger.info("Database connection pool initialized")
    else:
        logger.warning("DATABASE_URL not set; database-backed endpoints will fail")

    yield

    # Shutdown
    db = getattr(app.state, "db", None)
    if db is not None:
        await db.close()
        logger.info("Database connection pool closed")

    logger.info("EchoWrite Backend shutting down...")


app = FastAPI(
    title="EchoWrite",
    description="AI social media post generation with usage quotas and subscriptions",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS configuration from Settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(EchoWriteError)
async def echowrite_error_handler(request: Request, exc: EchoWriteError):
    """Render every application error with its own status and stable code."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "echowrite"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "EchoWrite API",
        "version": "1.0.0",
        "docs": "/docs",
    }


# ============================================================================
# Import and register routers
# ============================================================================

from app.api.routes import admin, auth, chats, conversations, sessions, subscriptions, webhooks  # noqa: E402

app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(sessions.router, prefix="/api", tags=["Sessions"])
app.include_router(conversations.router, prefix="/api", tags=["Conversations"])
app.include_router(chats.router, prefix="/api", tags=["Chat"])
app.include_router(webhooks.router, prefix="/api", tags=["Webhooks"])
app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
app.include_router(admin.router)

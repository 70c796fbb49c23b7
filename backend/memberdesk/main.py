"""FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import SessionLocal
from .domain_errors import DomainError, store_unavailable
from .problem_details import build_problem_details_response
from .routers import admins, auth, dashboard, layouts, members, notifications, update_requests, uploads
from .services.document_store import DocumentStore, DocumentStoreError
from .services.identity import build_identity_provider
from .services.layout import LAYOUT_KINDS
from .services.member_cache import MemberCache
from .services.toasts import ToastLog
from .use_cases.layouts import LayoutEditor

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Production safety checks (fail closed on insecure config).
if settings.ENV.lower() == "production" and settings.JWT_SECRET_KEY == "change-me-in-production":
    raise RuntimeError("JWT_SECRET_KEY must be set in production.")
if settings.ENV.lower() == "production" and not settings.cors_origins:
    raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
if settings.ENV.lower() == "production" and any(origin.strip() == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the store, identity provider, member cache and layout editors."""
    store = DocumentStore(SessionLocal)
    identity = build_identity_provider(settings, SessionLocal)
    toasts = ToastLog()
    cache = MemberCache(store, identity, toasts=toasts)

    app.state.store = store
    app.state.identity = identity
    app.state.member_cache = cache
    app.state.layout_editors = {kind: LayoutEditor(store, kind, toasts) for kind in LAYOUT_KINDS}

    await cache.init()
    logger.info("Application started env=%s identity=%s", settings.ENV, settings.IDENTITY_BACKEND)
    try:
        yield
    finally:
        cache.dispose()
        store.close()
        logger.info("Application stopped")


# Create app
app = FastAPI(
    title="MemberDesk Admin Console",
    version="1.0.0",
    description="Backend API for the membership association admin console",
    lifespan=lifespan,
)


@app.exception_handler(DomainError)
async def domain_error_handler(_request: Request, exc: DomainError):
    return build_problem_details_response(exc)


@app.exception_handler(DocumentStoreError)
async def store_error_handler(_request: Request, exc: DocumentStoreError):
    logger.error("Document store failure: %s", exc)
    return build_problem_details_response(store_unavailable(exc))


# CORS
cors_methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
cors_headers = ["Authorization", "Content-Type"]
if settings.ENV.lower() != "production":
    cors_headers = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=cors_methods,
    allow_headers=cors_headers,
)

# Include routers
app.include_router(auth.router, prefix="/api/v1")
app.include_router(members.router, prefix="/api/v1")
app.include_router(update_requests.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")
app.include_router(admins.router, prefix="/api/v1")
app.include_router(layouts.router, prefix="/api/v1")
app.include_router(uploads.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")


@app.get("/api/v1/system/health")
def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "identity_backend": settings.IDENTITY_BACKEND,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "MemberDesk Admin Console API",
        "version": "1.0.0",
        "docs": "/docs"
    }

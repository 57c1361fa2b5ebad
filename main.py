"""
ContentHub - FastAPI Backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from contenthub.core.config import settings
from contenthub.core.db import engine, Base, SessionLocal
from contenthub.core.errors import ContentHubError, StorageError
from contenthub.api import routes_admin, routes_auth, routes_public
from contenthub.services.auth_service import FirebaseAuthProvider, LocalAuthProvider
from contenthub.services.blob_storage import get_blob_store
from contenthub.services.content_service import ContentService, seed_demo_content
from contenthub.services.document_store import FirestoreDocumentStore, SqlDocumentStore, use_firestore
from contenthub.services.repositories import AttendeeRepo, EventRepo, HeroRepo, PostRepo
from contenthub.services.ticketing_service import EventService
from contenthub.utils.responses import error_response

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

def _seed() -> None:
    db = SessionLocal()
    try:
        if use_firestore():
            store = FirestoreDocumentStore()
            auth = FirebaseAuthProvider()
        else:
            store = SqlDocumentStore(db)
            auth = LocalAuthProvider(store)
        seed_demo_content(
            auth,
            ContentService(HeroRepo(store), PostRepo(store)),
            EventService(EventRepo(store), AttendeeRepo(store)),
        )
    finally:
        db.close()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    if not use_firestore():
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")

    try:
        get_blob_store().ensure_bucket()
    except ContentHubError as e:
        logger.error(f"Media storage unavailable: {e.message}")

    if settings.SEED_DEMO_CONTENT:
        try:
            _seed()
        except ContentHubError as e:
            logger.error(f"Demo content seeding failed: {e.message}")

    yield
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="ContentHub",
    description="Content management API: hero, posts, events with ticketing, and dynamic forms",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(ContentHubError)
async def contenthub_error_handler(request: Request, exc: ContentHubError):
    if isinstance(exc, StorageError):
        logger.error(f"{request.method} {request.url.path}: {exc.message} ({exc.__cause__!r})")
    return error_response(
        message=exc.message,
        error_code=exc.code,
        details=exc.details,
        status_code=exc.status_code
    )

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(
        message=str(exc.detail),
        error_code="http_error",
        status_code=exc.status_code
    )

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    return error_response(
        message=message,
        error_code="validation_error",
        details=[{k: e[k] for k in ("loc", "msg", "type") if k in e} for e in errors],
        status_code=422
    )

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(
        message="Internal server error",
        error_code="internal_error",
        status_code=500
    )

# Include routers
app.include_router(routes_public.router, prefix=settings.API_PREFIX, tags=["public"])
app.include_router(routes_auth.router, prefix=settings.API_PREFIX, tags=["auth"])
app.include_router(routes_admin.router, prefix=settings.API_PREFIX, tags=["admin"])

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )

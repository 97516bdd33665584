import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import all models so they're registered with SQLAlchemy Base before create_all
from . import (
    models,  # noqa: F401
    models_google_drive,  # noqa: F401
    models_journey,  # noqa: F401
    models_lawpay,  # noqa: F401
)
from .config import ALLOWED_ORIGINS, CSRF_ENABLED, SECURITY_HEADERS_ENABLED
from .csrf import CSRFMiddleware, csrf_token_handler
from .database import Base, engine
from .routes.auth import router as auth_router
from .routes.bridge_conversations import router as bridge_conversations_router
from .routes.client_journeys import router as client_journeys_router
from .routes.documents import router as documents_router
from .routes.google_drive import router as google_drive_router
from .routes.journey_steps import router as journey_steps_router
from .routes.journeys import router as journeys_router
from .routes.lawpay import router as lawpay_router
from .routes.matters import router as matters_router
from .routes.oauth_providers import router as oauth_providers_router
from .routes.payments import router as payments_router
from .routes.service_categories import router as service_categories_router
from .routes.snapshots import router as snapshots_router
from .routes.users import router as users_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Another worker may have created them first
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="YTP Client Portal API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing input is a 400 with the field errors attached"""
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid input", "errors": jsonable_encoder(exc.errors())},
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

if CSRF_ENABLED:
    app.add_middleware(CSRFMiddleware)
    logger.info("CSRF protection enabled")
else:
    logger.info("CSRF protection disabled")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(auth_router, prefix="/api")
app.include_router(lawpay_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(matters_router, prefix="/api")
app.include_router(documents_router, prefix="/api")
app.include_router(journeys_router, prefix="/api")
app.include_router(journey_steps_router, prefix="/api")
app.include_router(client_journeys_router, prefix="/api")
app.include_router(snapshots_router, prefix="/api")
app.include_router(service_categories_router, prefix="/api")
app.include_router(bridge_conversations_router, prefix="/api")
app.include_router(oauth_providers_router, prefix="/api")
app.include_router(payments_router, prefix="/api")
app.include_router(google_drive_router, prefix="/api")


@app.get("/api/csrf-token")
async def get_csrf_token(request: Request, response: Response):
    """
    Get a CSRF token for the frontend.
    The token is also set as a cookie; echo it in X-CSRF-Token on state-changing requests.
    """
    return await csrf_token_handler(request, response)


@app.get("/health")
def health():
    return {"status": "healthy"}

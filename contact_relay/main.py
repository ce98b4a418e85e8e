import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from contact_relay.api.routes import contact, health
from contact_relay.core.config import settings
from contact_relay.core.errors import AVAILABLE_ENDPOINTS, register_exception_handlers
from contact_relay.core.logging import setup_logging
from contact_relay.core.middleware import RequestIdMiddleware

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


tags_metadata = [
    {
        "name": "contact",
        "description": "**Contact** - Public contact form relayed to the operator inbox by email.",
    },
    {
        "name": "health",
        "description": "**Health** - Liveness and delivery configuration checks.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(
        f"Delivery provider: {settings.EMAIL_PROVIDER} | "
        f"contact form: {settings.CONTACT_FORM}"
    )
    if settings.email_configured:
        logger.info("Email credentials found")
    elif settings.EMAIL_PROVIDER == "resend":
        logger.warning(
            "Email credentials missing. Set RESEND_API_KEY and EMAIL_FROM in your .env file"
        )
    else:
        logger.warning(
            "Email credentials missing. Set EMAIL_USER and EMAIL_PASS in your .env file"
        )

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Relays website contact form submissions to the operator inbox by email.",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID", "Accept"],
)

# Request ID Tracing
app.add_middleware(RequestIdMiddleware)

# Register global exception handlers
register_exception_handlers(app)

app.include_router(contact.router, prefix=settings.API_PREFIX, tags=["contact"])
app.include_router(health.router, prefix=settings.API_PREFIX)


# Root endpoint
@app.get(
    "/",
    summary="API root",
    description="Returns basic API metadata and the list of available endpoints.",
)
async def root():
    """Root endpoint with API info"""
    return {
        "message": f"{settings.PROJECT_NAME} Server is running!",
        "version": settings.VERSION,
        "endpoints": {
            "health": "GET /api/health",
            "contact": "POST /api/contact",
            "testEmail": "GET /api/test-email",
        },
        "availableEndpoints": AVAILABLE_ENDPOINTS,
    }

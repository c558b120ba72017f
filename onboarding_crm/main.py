import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from . import config
from . import models  # noqa: F401
from .database import Base, engine
from .domain.applications.router import router as applications_router
from .domain.imports.router import router as import_router
from .domain.members.router import router as members_router
from .domain.notes.router import router as notes_router
from .domain.onboarding.router import router as onboarding_router
from .domain.team_members.router import router as team_members_router
from .routes.calendly_webhooks import router as calendly_webhooks_router
from .routes.cancellations import router as cancellations_router
from .routes.jobs import router as jobs_router
from .routes.samcart_webhooks import router as samcart_webhooks_router
from .routes.slack import router as slack_router
from .routes.stats import router as stats_router
from .routes.typeform_webhooks import router as typeform_webhooks_router
from .routes.validate import router as validate_router
from .routes.wasender_webhooks import router as wasender_webhooks_router

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
        # Several workers may race on first start
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    from .rate_limiter import get_redis_client

    if get_redis_client() is None:
        logger.warning("Redis unavailable - rate limiting uses the in-process counter only")
    else:
        logger.info("Redis connection established")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Onboarding CRM API", version="1.0.0", lifespan=lifespan)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


logger.info(f"CORS allowed origins: {config.ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
API_PREFIX = "/api"
app.include_router(applications_router, prefix=API_PREFIX)
app.include_router(members_router, prefix=API_PREFIX)
app.include_router(team_members_router, prefix=API_PREFIX)
app.include_router(notes_router, prefix=API_PREFIX)
app.include_router(cancellations_router, prefix=API_PREFIX)
app.include_router(stats_router, prefix=API_PREFIX)
app.include_router(import_router, prefix=API_PREFIX)
app.include_router(onboarding_router, prefix=API_PREFIX)
app.include_router(validate_router, prefix=API_PREFIX)
app.include_router(typeform_webhooks_router, prefix=API_PREFIX)
app.include_router(calendly_webhooks_router, prefix=API_PREFIX)
app.include_router(wasender_webhooks_router, prefix=API_PREFIX)
app.include_router(samcart_webhooks_router, prefix=API_PREFIX)
app.include_router(slack_router, prefix=API_PREFIX)
app.include_router(jobs_router, prefix=API_PREFIX)


@app.get("/")
def root():
    return {"message": "Onboarding CRM API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}

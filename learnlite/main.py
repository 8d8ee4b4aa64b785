"""
learnlite/main.py
Application entry point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.config.feature_flags import feature_flags
from learnlite.config.settings import settings
from learnlite.database import init_db, close_db, get_db, check_database
from learnlite.errors import envelope, error_body, ErrorCode, setup_error_handlers
from learnlite.middleware.request_context import RequestContextMiddleware
from learnlite.routes import router
from learnlite.routes.auth import limiter
from learnlite.schemas import ReadinessStatus, ServiceInfo
from learnlite.tasks.notifications_worker import get_worker

settings.validate()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

MODULES = [
    "auth", "users", "courses", "lessons", "enrollments",
    "progress", "quizzes", "certificates", "notifications",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} {settings.api_version}...")
    logger.info(f"Configuration: {settings.summary()}")
    logger.info(f"Feature flags: {feature_flags.get_all_flags()}")
    try:
        await init_db()
        logger.info("Database connected successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {str(e)}")
        raise

    worker = get_worker()
    if settings.notifications_enabled and settings.notifications_worker_enabled:
        worker.start()
    else:
        logger.info("Notifications worker disabled (set NOTIFICATIONS_WORKER_ENABLED=true to enable)")

    yield

    logger.info("Shutting down application...")
    await worker.stop()
    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error closing database connection: {str(e)}")


app = FastAPI(
    title="LearnLite API",
    description="E-learning backend: courses, lessons, enrollments, quizzes and certificates",
    version=settings.api_version,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan
)

app.state.limiter = limiter
setup_error_handlers(app)

origins = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:8000",
]
origins.extend(settings.allowed_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestContextMiddleware)


@app.get("/", tags=["Root"])
async def root():
    info = ServiceInfo(
        name=settings.app_name,
        version=settings.api_version,
        environment=settings.environment,
        modules=MODULES,
        docs="/docs" if settings.is_development else None,
    )
    return envelope(info.model_dump())


@app.get("/healthz", tags=["Health"], response_class=PlainTextResponse)
async def healthz():
    return "ok"


@app.get("/readiness", tags=["Health"])
async def readiness(db: AsyncSession = Depends(get_db)):
    try:
        database = await check_database(db)
    except Exception as e:
        logger.error(f"Readiness check failed: {type(e).__name__}: {str(e)}")
        return JSONResponse(
            status_code=503,
            content=error_body(ErrorCode.INTERNAL_ERROR, "Database unavailable"),
        )
    return envelope(ReadinessStatus(status="ready", database=database).model_dump())


app.include_router(router, prefix="/api")

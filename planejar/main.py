import logging
import os

from alembic import command
from alembic.config import Config
from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from planejar.config import settings
from planejar.db import Base, SessionLocal, engine, get_db
from planejar.exceptions import (
    AppException,
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from planejar.middleware.request_id import RequestIDMiddleware
from planejar.rate_limit import limiter, rate_limit_exceeded_handler
from planejar.routers import ai, auth, documents, notifications, phases, projects, tasks, users
from planejar.seed import seed_all
from planejar.utils.logging import configure_logging

configure_logging(logging.INFO)
logger = logging.getLogger(__name__)


def run_migrations():
    """Run Alembic migrations on startup"""
    logger.info("Running DB migrations...")
    root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    alembic_cfg = Config(os.path.join(root_dir, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(root_dir, "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url_fixed)
    command.upgrade(alembic_cfg, "head")
    logger.info("DB migrations completed successfully")


app = FastAPI(
    title=settings.APP_NAME,
    description="Gestão de projetos de holding familiar: da análise patrimonial ao suporte pós-conclusão",
    version="1.0.0"
)

app.state.limiter = limiter

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(Exception, general_exception_handler)

allowed_origins = settings.cors_origins_list
if settings.FRONTEND_URL and settings.FRONTEND_URL not in allowed_origins:
    allowed_origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
    max_age=3600,
)
app.add_middleware(RequestIDMiddleware)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})...")
    if settings.STORAGE_BACKEND == "local":
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

    if settings.RUN_MIGRATIONS:
        try:
            run_migrations()
        except Exception as e:
            logger.error(f"Failed to run DB migrations: {e}")
    else:
        Base.metadata.create_all(bind=engine)

    if settings.SEED_ON_STARTUP:
        db = SessionLocal()
        try:
            seed_all(db)
            logger.info("Seed data loaded")
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to seed data: {e}")
        finally:
            db.close()


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(projects.router)
app.include_router(phases.router)
app.include_router(tasks.router)
app.include_router(documents.router)
app.include_router(notifications.router)
app.include_router(ai.router)


@app.get("/")
def read_root():
    return {"message": f"{settings.APP_NAME} API", "version": "1.0.0", "status": "running"}


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check with database verification"""
    health_status = {"status": "ok", "checks": {}}
    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "ok"
    except Exception as e:
        health_status["checks"]["database"] = "error"
        health_status["status"] = "degraded"
        logger.error(f"Database health check failed: {e}")
    health_status["checks"]["ai"] = "ok" if settings.ai_enabled else "not_configured"
    return health_status

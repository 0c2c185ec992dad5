# app/main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
import sys
import time
import psutil

from app.core.database import test_connection, init_db
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.rate_limiter import limiter

# Routers
from app.api.endpoints import (
    submissions as submissions_router,
    admin as admin_router,
    permissions as permissions_router,
    audit as audit_router,
)

# ------------------------------------------------------------
# LOGURU CONFIGURATION
# ------------------------------------------------------------
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
           "<level>{level}</level> | "
           "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
           "<level>{message}</level>",
    colorize=True,
    backtrace=True,
    diagnose=settings.ENV != "prod",
)

# ------------------------------------------------------------
# FASTAPI APP INIT
# ------------------------------------------------------------
app = FastAPI(
    title="Galileo Writing Service",
    version="1.0.0",
    description="Submission and moderation workflow for the Galileo publishing platform.",
)

START_TIME = time.time()
DB_STATUS = "Connecting..."

app.state.limiter = limiter
register_exception_handlers(app)


# ------------------------------------------------------------
# METRICS API
# ------------------------------------------------------------
@app.get("/api/metrics", tags=["System"])
async def metrics():
    uptime_seconds = int(time.time() - START_TIME)
    cpu_usage = psutil.cpu_percent(interval=None)
    ram_usage = psutil.virtual_memory().percent
    try:
        disk_usage = psutil.disk_usage('/').percent
    except OSError:
        disk_usage = 0

    db_start = time.time()
    db_latency = 0
    try:
        await test_connection()
        current_db_status = "Connected"
        db_latency = round((time.time() - db_start) * 1000, 2)
    except Exception as e:
        logger.error(f"Health check: database unreachable: {e}")
        current_db_status = "Error"

    return {
        "status": "Online",
        "version": app.version,
        "cpu": cpu_usage,
        "ram": ram_usage,
        "disk": disk_usage,
        "uptime": uptime_seconds,
        "database": current_db_status,
        "db_latency": db_latency,
        "storage": "Configured" if settings.SUPABASE_URL and settings.SUPABASE_KEY else "Not Configured",
        "smtp": "Configured" if settings.SMTP_HOST else "Not Configured",
    }


# ------------------------------------------------------------
# CORS CONFIGURATION
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Idempotency-Key", "*"],
)

# ------------------------------------------------------------
# REGISTER ROUTERS
# ------------------------------------------------------------
app.include_router(submissions_router.router)
app.include_router(admin_router.router)
app.include_router(permissions_router.router)
app.include_router(audit_router.router)


# ------------------------------------------------------------
# APPLICATION STARTUP EVENTS
# ------------------------------------------------------------
@app.on_event("startup")
async def on_startup():
    global DB_STATUS
    logger.info("Starting Galileo Writing Service...")

    try:
        await test_connection()
        DB_STATUS = "Connected"
        logger.success("Database connection established.")
    except Exception:
        DB_STATUS = "Error"
        logger.exception("Database connection failed.")

    if DB_STATUS == "Connected":
        try:
            await init_db()
            logger.success("Database tables ready.")
        except Exception as e:
            logger.warning(f"Table initialization encountered an issue: {e}")

    if not settings.NOTIFICATION_SERVICE_URL:
        logger.warning("NOTIFICATION_SERVICE_URL not set; owner notifications are disabled.")

    logger.success("Startup completed.")


# ------------------------------------------------------------
# ROOT HEALTH CHECK
# ------------------------------------------------------------
@app.get("/", tags=["System"])
async def root():
    return {
        "status": "ok",
        "service": "Galileo Writing Service",
        "version": app.version,
        "database": DB_STATUS,
    }

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from horde.core.config import settings
from horde.db.dynamo import create_tables
from horde.routers import (
    admin,
    analytics,
    auth,
    budgets,
    categories,
    dev,
    expenses,
    google,
    health,
    notifications,
    reports,
    sources,
    user,
    ws,
)
from horde.utils.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: provision local tables and start the scheduler
    if settings.DYNAMO_CREATE_TABLES:
        created = create_tables()
        logger.info(f"DynamoDB tables ready ({len(created)} created)")
    logger.info("Starting scheduler...")
    start_scheduler()
    yield
    # Shutdown: Stop the scheduler
    logger.info("Stopping scheduler...")
    stop_scheduler()


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=3600,
)


# Root endpoint
@app.get("/")
def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API"}


# Register routers
app.include_router(health.router, prefix=f"{settings.API_PREFIX}", tags=["Health"])  # /api/v1/health
app.include_router(auth.router, prefix=f"{settings.API_PREFIX}/auth", tags=["Auth"])
app.include_router(google.router, prefix=f"{settings.API_PREFIX}/auth/google", tags=["Auth"])
app.include_router(user.router, prefix=f"{settings.API_PREFIX}/user", tags=["User"])
app.include_router(budgets.router, prefix=f"{settings.API_PREFIX}/user/budget", tags=["Budgets"])
app.include_router(categories.router, prefix=f"{settings.API_PREFIX}/user/budget", tags=["Budgets"])
app.include_router(sources.router, prefix=f"{settings.API_PREFIX}/user/budget", tags=["Budgets"])
app.include_router(reports.router, prefix=f"{settings.API_PREFIX}/user/budget", tags=["Reports"])
app.include_router(expenses.router, prefix=f"{settings.API_PREFIX}/user/expense", tags=["Expenses"])
app.include_router(notifications.router, prefix=f"{settings.API_PREFIX}/user/notifications", tags=["Notifications"])
app.include_router(analytics.router, prefix=f"{settings.API_PREFIX}/user/analytics", tags=["Analytics"])
app.include_router(dev.router, prefix=f"{settings.API_PREFIX}/user/dev", tags=["Development"])
app.include_router(admin.router, prefix=f"{settings.API_PREFIX}/admin", tags=["Admin"])
app.include_router(ws.router, prefix=f"{settings.API_PREFIX}/ws")

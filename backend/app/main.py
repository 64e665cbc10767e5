"""
FastAPI application entry point for the order review console.

This is the main app that:
- Initializes FastAPI with CORS
- Creates the app-owned services (timezone, review, stats cache)
- Registers all API routers
- Provides health check endpoint
- Sets up database connection lifecycle
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import engine
# Import API routers
from app.api import orders, dashboard, activation_codes, admin_groups, system_settings, telegram_users
from app.services.clock import TimezoneService
from app.services.events import StaleNotifier
from app.services.review import ReviewService
from app.services.stats import DashboardStatsCache

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def install_services(app: FastAPI) -> None:
    """
    Create the services the routers share and hang them on app.state.

    The stats cache subscribes to the review service's stale notifications.
    """
    timezone_service = TimezoneService(settings.default_timezone)
    notifier = StaleNotifier()
    stats_cache = DashboardStatsCache(timezone_service)
    notifier.subscribe(stats_cache.invalidate)

    app.state.timezone_service = timezone_service
    app.state.notifier = notifier
    app.state.review_service = ReviewService(notifier)
    app.state.stats_cache = stats_cache


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    On startup: Database connection is already handled by engine
    On shutdown: Close database connections gracefully
    """
    # Startup
    logger.info("🚀 Starting Order Review Console API...")
    logger.info(f"📊 Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else 'configured'}")
    logger.info(f"🕒 Default timezone: {settings.default_timezone}")
    logger.info(f"🔧 Debug mode: {settings.debug}")

    yield

    # Shutdown
    logger.info("👋 Shutting down Order Review Console API...")
    await engine.dispose()


# Initialize FastAPI app
app = FastAPI(
    title="Order Review Console API",
    description="Review, approve and amend bot-submitted transaction reports",
    version="1.0.0",
    debug=settings.debug,
    lifespan=lifespan,
)
install_services(app)

# Configure CORS
# Set ALLOWED_ORIGINS environment variable with comma-separated domains
allowed_origins = [
    "http://localhost:5173",  # Local console development
]

if settings.allowed_origins:
    allowed_origins.extend(origin.strip() for origin in settings.allowed_origins.split(',') if origin.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Simple health check endpoint."""
    return {
        "status": "healthy",
        "service": "Order Review Console API",
        "version": "1.0.0",
    }


# Root endpoint
@app.get("/")
async def root():
    """API root with basic info."""
    return {
        "message": "Order Review Console API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


# Register API routers
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
app.include_router(activation_codes.router, prefix="/api/employee-codes", tags=["activation-codes"])
app.include_router(admin_groups.router, prefix="/api/admin-groups", tags=["admin-groups"])
app.include_router(system_settings.router, prefix="/api/settings", tags=["settings"])
app.include_router(telegram_users.router, prefix="/api/telegram-users", tags=["telegram-users"])

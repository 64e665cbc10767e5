"""
Dependencies that hand the app-owned services to the routers.

The services are created once per application by app.main.install_services
and stored on app.state.
"""
from fastapi import Request

from app.services.clock import TimezoneService
from app.services.review import ReviewService
from app.services.stats import DashboardStatsCache


def get_timezone_service(request: Request) -> TimezoneService:
    return request.app.state.timezone_service


def get_review_service(request: Request) -> ReviewService:
    return request.app.state.review_service


def get_stats_cache(request: Request) -> DashboardStatsCache:
    return request.app.state.stats_cache

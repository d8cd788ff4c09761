"""
Prometheus metrics definitions for the progression service.

Metrics are organized by category:
- HTTP/API metrics: Request counts, latency, in-flight requests
- Error metrics: Errors by type and component
- Gamification metrics: XP awarded, level ups, streak calculations

Metrics are exposed at the /metrics endpoint for Prometheus scraping.
"""

import logging
import os
import sys
from prometheus_client import Counter, Gauge, Histogram, Info

logger = logging.getLogger(__name__)

# =============================================================================
# HTTP/API Metrics
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests received",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0],
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

# =============================================================================
# Error Metrics
# =============================================================================

errors_total = Counter(
    "errors_total",
    "Total errors by type and component",
    ["error_type", "component"],  # component: api/database/gamification
)

# =============================================================================
# Gamification Metrics
# =============================================================================

gamification_xp_awarded_total = Counter(
    "gamification_xp_awarded_total",
    "Total XP awarded",
    ["source"],
)

gamification_level_ups_total = Counter(
    "gamification_level_ups_total",
    "Total level ups",
)

gamification_streak_calculations_total = Counter(
    "gamification_streak_calculations_total",
    "Streak computations performed",
    ["boundary"],
)

# =============================================================================
# Application Info
# =============================================================================

app_info = Info(
    "app_info",
    "Application information",
)


def init_metrics():
    """
    Initialize metrics with application information.

    This should be called once at application startup to set
    static metadata about the application.
    """
    app_info.info(
        {
            "version": os.getenv("GIT_COMMIT_SHA", "dev")[:7],
            "environment": os.getenv("ENVIRONMENT", "development"),
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
        }
    )

    logger.info("Prometheus metrics initialized")

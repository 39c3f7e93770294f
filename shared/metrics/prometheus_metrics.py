"""Prometheus metrics definitions and helpers.

Provides the HTTP and user-domain metrics for the users API.
"""

from typing import Callable

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class HTTPMetrics:
    """Request-level metrics recorded by the logging middleware."""

    def __init__(self, registry: CollectorRegistry) -> None:
        """Initialize HTTP metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
            registry=registry,
        )

        self.requests_in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests currently in progress",
            ["method", "endpoint"],
            registry=registry,
        )


class UserMetrics:
    """User service metrics."""

    def __init__(self, registry: CollectorRegistry) -> None:
        """Initialize user metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.users_created = Counter(
            "users_created_total",
            "Total number of users created",
            registry=registry,
        )

        self.user_create_rejected = Counter(
            "users_create_rejected_total",
            "Create requests rejected by validation or conflict",
            ["reason"],
            registry=registry,
        )

        self.login_attempts = Counter(
            "user_login_attempts_total",
            "Login attempts by outcome",
            ["outcome"],
            registry=registry,
        )


class ServiceMetrics:
    """All metrics of one application instance, bound to a private registry."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.http = HTTPMetrics(self.registry)
        self.users = UserMetrics(self.registry)


def get_metrics_handler(registry: CollectorRegistry) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Args:
        registry: Registry whose metrics are exported

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(registry)

    return metrics_handler

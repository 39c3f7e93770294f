"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    HTTPMetrics,
    ServiceMetrics,
    UserMetrics,
    get_metrics_handler,
)

__all__ = [
    "HTTPMetrics",
    "UserMetrics",
    "ServiceMetrics",
    "get_metrics_handler",
]

"""Observability: structured logging and metrics.

Provides standardized observability primitives using structlog for logging
and Prometheus for metrics.
"""

from frontdesk.observability.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]

import time
import os
from typing import Callable, Any, Dict, Optional, TypeVar, cast
import functools
from prometheus_client import (
    Counter, Histogram,
    start_http_server, generate_latest
)
import logging

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Type variable for function signatures
F = TypeVar('F', bound=Callable[..., Any])

# Metrics configuration
METRICS_PORT = int(os.getenv("METRICS_PORT", "9090"))
METRICS_ENABLED = get_settings().METRICS_ENABLED

# Define metrics
# Broker metrics
MESSAGES_PUBLISHED = Counter(
    "messages_published_total",
    "Number of messages published to the broker",
    ["exchange", "routing_key"]
)

MESSAGES_RECEIVED = Counter(
    "messages_received_total",
    "Number of messages received from the broker",
    ["queue"]
)

# OAuth2 metrics
TOKENS_ISSUED = Counter(
    "oauth_tokens_issued_total",
    "Number of access tokens issued",
    ["grant_type"]
)

TOKEN_ERRORS = Counter(
    "oauth_token_errors_total",
    "Number of rejected token and check_token requests",
    ["error"]
)

TOKEN_REQUEST_DURATION = Histogram(
    "oauth_token_request_duration_seconds",
    "Duration of token endpoint requests in seconds",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5)
)

# API metrics
API_REQUEST_COUNT = Counter(
    "api_request_count",
    "Number of API requests",
    ["method", "endpoint", "status"]
)

API_REQUEST_DURATION = Histogram(
    "api_request_duration_seconds",
    "Duration of API requests in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10)
)


def setup_metrics(port: int = METRICS_PORT) -> None:
    """
    Start an HTTP server exposing metrics.

    Used by processes without an HTTP surface of their own (the queue
    listener); the API serves ``/metrics`` itself.
    """
    if not METRICS_ENABLED:
        logger.info("Metrics collection is disabled")
        return

    logger.info(f"Starting metrics HTTP server on port {port}")
    start_http_server(port)


def timing_metric(
    histogram: Histogram,
    labels: Optional[Dict[str, str]] = None,
) -> Callable[[F], F]:
    """
    Decorator to measure and record the execution time of a function.

    Args:
        histogram: The Prometheus histogram to record to
        labels: Labels to apply to the metric

    Returns:
        A decorator function
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            # Skip if metrics are disabled
            if not METRICS_ENABLED:
                return func(*args, **kwargs)

            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                duration = time.time() - start_time
                if labels:
                    histogram.labels(**labels).observe(duration)
                else:
                    histogram.observe(duration)

        return cast(F, wrapper)

    return decorator


def set_message_published(exchange: str, routing_key: str) -> None:
    if not METRICS_ENABLED:
        return
    MESSAGES_PUBLISHED.labels(exchange=exchange or "", routing_key=routing_key or "").inc()


def set_message_received(queue: str) -> None:
    if not METRICS_ENABLED:
        return
    MESSAGES_RECEIVED.labels(queue=queue or "").inc()


def set_token_metrics(grant_type: str, error: Optional[str] = None) -> None:
    """
    Record the outcome of a token request.

    Args:
        grant_type: Requested grant type
        error: OAuth2 error code if the request was rejected
    """
    if not METRICS_ENABLED:
        return

    if error:
        TOKEN_ERRORS.labels(error=error).inc()
    else:
        TOKENS_ISSUED.labels(grant_type=grant_type).inc()


def set_api_metrics(
    method: str,
    endpoint: str,
    status: int,
    duration: float,
) -> None:
    """
    Set API request metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        endpoint: API endpoint
        status: HTTP status code
        duration: Request duration in seconds
    """
    if not METRICS_ENABLED:
        return

    status_str = str(status)
    API_REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status_str).inc()
    API_REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)


def get_metrics() -> bytes:
    """
    Get the current metrics in Prometheus format.

    Returns:
        Metrics data as bytes
    """
    if not METRICS_ENABLED:
        return b""

    return generate_latest()

import re
import time
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from fastapi import Response
from beanstalk.core.logging import get_logger

logger = get_logger("monitoring")

# Create a custom registry for better control
REGISTRY = CollectorRegistry()

# HTTP Metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

http_requests_in_progress = Gauge(
    'http_requests_in_progress',
    'HTTP requests currently in progress',
    registry=REGISTRY
)

# Application Metrics
stored_prds = Gauge(
    'stored_prds_total',
    'Number of PRD records held in the store',
    registry=REGISTRY
)

generations_total = Counter(
    'generations_total',
    'Completed pipeline generations',
    ['stage', 'status'],
    registry=REGISTRY
)

llm_requests_total = Counter(
    'llm_requests_total',
    'Total requests to LLM',
    ['operation', 'status'],
    registry=REGISTRY
)

llm_request_duration_seconds = Histogram(
    'llm_request_duration_seconds',
    'LLM request duration in seconds',
    ['operation'],
    registry=REGISTRY
)

# Error Metrics
errors_total = Counter(
    'errors_total',
    'Total application errors',
    ['error_type', 'endpoint'],
    registry=REGISTRY
)

# Health check metrics
health_check_status = Gauge(
    'health_check_status',
    'Health check status (1 = healthy, 0 = unhealthy)',
    ['service'],
    registry=REGISTRY
)


class MetricsMiddleware:
    """Middleware to collect HTTP metrics"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        path = scope["path"]

        # Skip metrics collection for metrics endpoint itself
        if path == "/metrics":
            await self.app(scope, receive, send)
            return

        normalized_path = normalize_path(path)

        start_time = time.time()
        http_requests_in_progress.inc()

        status_code = 500  # Default to error

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            record_error(type(e).__name__, normalized_path)
            logger.error("Request error", path=path, error=str(e))
            raise
        finally:
            duration = time.time() - start_time
            http_requests_in_progress.dec()

            http_requests_total.labels(
                method=method,
                endpoint=normalized_path,
                status_code=status_code
            ).inc()

            http_request_duration_seconds.labels(
                method=method,
                endpoint=normalized_path
            ).observe(duration)


def normalize_path(path: str) -> str:
    """Normalize path for metrics to avoid cardinality explosion"""
    path = re.sub(r'/prds/\d+', '/prds/{id}', path)
    path = re.sub(r'/epics/[^/]+', '/epics/{id}', path)
    return path


def record_llm_request(operation: str, duration: float, success: bool = True):
    """Record LLM request metrics"""
    status = "success" if success else "error"
    llm_requests_total.labels(operation=operation, status=status).inc()
    llm_request_duration_seconds.labels(operation=operation).observe(duration)


def record_generation(stage: str, success: bool = True):
    """Record a finished pipeline stage (prd, epics, story, app)"""
    generations_total.labels(stage=stage, status="success" if success else "error").inc()


def record_error(error_type: str, endpoint: str):
    errors_total.labels(error_type=error_type, endpoint=endpoint).inc()


def update_store_metrics(prd_count: int):
    stored_prds.set(prd_count)


def update_health_status(service: str, is_healthy: bool):
    """Update health status for a service"""
    health_check_status.labels(service=service).set(1 if is_healthy else 0)


async def get_metrics() -> Response:
    """Endpoint to expose Prometheus metrics"""
    try:
        metrics_data = generate_latest(REGISTRY)
        return Response(
            content=metrics_data,
            media_type=CONTENT_TYPE_LATEST
        )
    except Exception as e:
        logger.error("Failed to generate metrics", error=str(e))
        return Response(
            content="Error generating metrics",
            status_code=500
        )

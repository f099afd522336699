import os
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from beanstalk.core.config import settings
from beanstalk.core.exceptions import BeanstalkError
from beanstalk.core.logging import LoggingMiddleware, api_logger, configure_logging, get_logger
from beanstalk.core.monitoring import MetricsMiddleware, get_metrics, normalize_path, record_error, update_health_status
from beanstalk.core.rate_limiter import rate_limit_middleware, setup_redis_rate_limiter
from beanstalk.crud.prd import PrdRepository
from beanstalk.database.connection import get_store, get_store_stats
from beanstalk.routers import conversation, epics, prd

# Configure logging
configure_logging(settings.log_level)
logger = get_logger(__name__)


def configure_langsmith() -> bool:
    """Export LangSmith tracing variables for langchain when tracing is on"""
    if not (settings.langsmith_tracing and settings.langsmith_tracing.lower() == "true"):
        logger.info("LangSmith tracing disabled")
        return False

    os.environ["LANGCHAIN_TRACING_V2"] = "true"
    if settings.langsmith_endpoint:
        os.environ["LANGCHAIN_ENDPOINT"] = settings.langsmith_endpoint
    if settings.langsmith_api_key:
        os.environ["LANGCHAIN_API_KEY"] = settings.langsmith_api_key
    if settings.langsmith_project:
        os.environ["LANGCHAIN_PROJECT"] = settings.langsmith_project
    logger.info("LangSmith tracing enabled", project=settings.langsmith_project)
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Startup
    logger.info("Starting Beanstalk PRD API", version=settings.app_version, environment=settings.environment.value)

    if not settings.is_testing:
        settings.require_openai_api_key()

    configure_langsmith()

    redis_healthy = True
    if settings.rate_limit_enabled and settings.redis_url:
        redis_healthy = await setup_redis_rate_limiter(settings.redis_url)

    update_health_status("store", True)
    update_health_status("redis", redis_healthy)
    update_health_status("openai", settings.openai_configured)

    logger.info("Application startup complete")
    yield

    # Shutdown
    logger.info("Shutting down Beanstalk PRD API")


# Initialize FastAPI app with lifespan
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    **settings.get_cors_config()
)

# Add custom middleware
if settings.metrics_enabled:
    app.add_middleware(MetricsMiddleware)

app.add_middleware(LoggingMiddleware)

# Add rate limiting middleware
if settings.rate_limit_enabled:
    app.middleware("http")(rate_limit_middleware)


@app.exception_handler(BeanstalkError)
async def beanstalk_error_handler(request: Request, exc: BeanstalkError):
    """Render service errors as {"error", "detail"} with their mapped status"""
    endpoint = normalize_path(request.url.path)
    record_error(type(exc).__name__, endpoint)

    log = api_logger.warning if exc.status_code < 500 else api_logger.error
    log(
        "Request rejected",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        error=exc.message,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({"error": exc.message, "detail": exc.detail}),
    )


# Health and monitoring endpoints
@app.get("/health")
async def health_check(store: PrdRepository = Depends(get_store)):
    """Health check endpoint"""
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.app_version,
        "environment": settings.environment.value,
        "services": {},
    }

    health_status["services"]["store"] = {
        "status": "healthy",
        "stats": await get_store_stats(store),
    }
    update_health_status("store", True)

    openai_configured = settings.openai_configured
    health_status["services"]["openai"] = {
        "status": "configured" if openai_configured else "not_configured",
        "model": settings.openai_model,
    }
    update_health_status("openai", openai_configured)

    if settings.rate_limit_enabled:
        health_status["services"]["rate_limiter"] = {
            "status": "configured",
            "backend": "redis" if settings.redis_url else "memory",
        }

    if openai_configured:
        status_code = 200
    else:
        health_status["status"] = "degraded"
        status_code = 503

    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/metrics")
async def metrics(store: PrdRepository = Depends(get_store)):
    """Prometheus metrics endpoint"""
    if not settings.metrics_enabled:
        raise HTTPException(status_code=404, detail="Metrics disabled")
    # Refresh the store gauge before each scrape
    await get_store_stats(store)
    return await get_metrics()


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment.value,
        "docs_url": "/docs" if settings.is_development else None,
        "health_url": "/health",
        "metrics_url": "/metrics" if settings.metrics_enabled else None,
    }


app.include_router(prd.router)
app.include_router(epics.router)
app.include_router(conversation.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )

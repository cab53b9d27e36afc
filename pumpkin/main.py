from contextlib import asynccontextmanager
from typing import Optional
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
import structlog

from pumpkin.api.v1.router import api_router
from pumpkin.core.config import settings
from pumpkin.core.exceptions import BaseAPIException
from pumpkin.core.redis import RedisCache, close_redis
from pumpkin.core.security import security
from pumpkin.db.base import DocumentStore
from pumpkin.db.factory import create_document_store
from pumpkin.middleware.cors import TenantCorsMiddleware
from pumpkin.middleware.logging import LoggingMiddleware
from pumpkin.services.auth_service import AuthService
from pumpkin.services.content_service import ContentAccessService
from pumpkin.services.cors import TenantCorsPolicyProvider

# Metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration')

logger = structlog.get_logger()


def create_app(store: Optional[DocumentStore] = None, cache=None) -> FastAPI:
    """Build the API around one document store and one cache.

    Both default to what the settings select; tests pass their own.
    """
    store = store or create_document_store(settings)
    cache = cache or RedisCache()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("Starting Pumpkin CMS", provider=store.provider, environment=settings.ENVIRONMENT)
        await store.connect()
        yield
        # Shutdown
        logger.info("Shutting down Pumpkin CMS")
        await store.close()
        await close_redis()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-tenant headless CMS API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=f"{settings.API_PREFIX}/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url=f"{settings.API_PREFIX}/redoc" if settings.ENVIRONMENT != "production" else None,
    )

    cors_policy = TenantCorsPolicyProvider(store, cache, ttl=settings.TENANT_CORS_CACHE_TTL)
    app.state.store = store
    app.state.cors_policy = cors_policy
    app.state.content_service = ContentAccessService(store, security, cors_policy)
    app.state.auth_service = AuthService(store, security)

    # Middleware, innermost first
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)
    app.add_middleware(
        TenantCorsMiddleware,
        policy_provider=cors_policy,
        admin_origins=settings.CORS_ORIGINS,
        prefix=settings.API_PREFIX,
    )

    if settings.PROMETHEUS_ENABLED:
        @app.middleware("http")
        async def metrics_middleware(request: Request, call_next):
            start_time = time.time()
            response = await call_next(request)
            process_time = time.time() - start_time

            # Route template, not the raw path, keeps label cardinality bounded
            route = request.scope.get("route")
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=getattr(route, "path", "unmatched"),
                status=response.status_code
            ).inc()
            REQUEST_DURATION.observe(process_time)

            return response

    @app.exception_handler(BaseAPIException)
    async def api_exception_handler(request: Request, exc: BaseAPIException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error, "message": exc.message}
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else "Invalid request body"
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid Argument", "message": message}
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", path=request.url.path, error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content={"error": "Unexpected", "message": "An unexpected error occurred"}
        )

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": settings.APP_NAME, "provider": store.provider}

    @app.get("/metrics")
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Include API routes
    app.include_router(api_router, prefix=settings.API_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pumpkin.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development"
    )

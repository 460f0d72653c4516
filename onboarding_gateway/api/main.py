"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from onboarding_gateway.api.middleware import MetricsMiddleware, RequestIDMiddleware
from onboarding_gateway.api.v1 import onboarding
from onboarding_gateway.config import settings
from onboarding_gateway.infrastructure.database.session import init_db
from onboarding_gateway.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Onboarding Gateway",
        description="Account onboarding and KYC wizard service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(onboarding.router, prefix="/v1", tags=["onboarding"])

    return app


app = create_app()

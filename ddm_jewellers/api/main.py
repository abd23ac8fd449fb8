"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from ddm_jewellers.api.middleware import MetricsMiddleware, RequestIDMiddleware
from ddm_jewellers.api.v1 import admin, auth, cart, categories, gullak, market_rates, orders, products
from ddm_jewellers.config import settings
from ddm_jewellers.infrastructure.database.models import Base
from ddm_jewellers.infrastructure.database.session import SessionLocal, engine
from ddm_jewellers.infrastructure.observability.logging import setup_logging
from ddm_jewellers.services.bootstrap import seed_admin
from ddm_jewellers.services.scheduler import BackgroundScheduler

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_schema:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_admin(db)
    finally:
        db.close()

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = BackgroundScheduler(SessionLocal)
        scheduler.start()

    yield

    if scheduler is not None:
        await scheduler.stop()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
    logging.info(
        "Request validation failed",
        extra={"request_id": getattr(request.state, "request_id", "unknown"), "path": request.url.path},
    )
    return JSONResponse(status_code=400, content={"detail": "Invalid data", "errors": errors})


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="DDM Jewellers API",
        description="Jewellery storefront with live metal pricing and Gullak savings plans",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age_seconds,
        https_only=settings.session_https_only,
        same_site="lax",
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(auth.router, prefix="/api", tags=["auth"])
    app.include_router(categories.router, prefix="/api", tags=["categories"])
    app.include_router(products.router, prefix="/api", tags=["products"])
    app.include_router(cart.router, prefix="/api", tags=["cart"])
    app.include_router(orders.router, prefix="/api", tags=["orders"])
    app.include_router(market_rates.router, prefix="/api", tags=["market-rates"])
    app.include_router(gullak.router, prefix="/api", tags=["gullak"])
    app.include_router(admin.router, prefix="/api", tags=["admin"])

    return app


app = create_app()

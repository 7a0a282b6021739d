"""Application factory for the geocoding service behind the location picker."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.errors import http_exception_handler, validation_exception_handler
from .core.logging import configure_logging
from .core.settings import settings
from .middlewares import RequestIdMiddleware
from .routers import geocode as geocode_router
from .services.geocoder import GeocodeGateway

instrumentator = Instrumentator()


def create_app(gateway: GeocodeGateway | None = None) -> FastAPI:
    configure_logging(settings.LOG_LEVEL)
    app = FastAPI(title=settings.APP_NAME)
    if gateway is not None:
        app.state.gateway = gateway

    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(geocode_router.router)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    instrumentator.instrument(app).expose(app, include_in_schema=False)
    return app


app = create_app()

__all__ = ["app", "create_app"]

from typing import Optional

from fastapi import FastAPI, Request


from app.api.v1.routes_health import router as health_router
from app.api.v1.routes_sessions import router as sessions_router
from app.api.v1.routes_security import router as security_router

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.services.runtime import ServiceContainer


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    app = FastAPI(
        title="Threat Graph Pipeline",
        version="0.1.0",
        description=(
            "Network session ingestion, oracle-backed threat classification, "
            "graph correlation and incident views."
        ),
    )

    # A pre-built container (tests, embedding) is used as-is and not started here.
    app.state.container = container

    @app.on_event("startup")
    async def on_startup() -> None:
        setup_logging(settings.LOG_LEVEL)
        if app.state.container is None:
            app.state.container = ServiceContainer.from_settings(settings)
            await app.state.container.start()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        if app.state.container is not None:
            await app.state.container.stop()

    @app.get("/", tags=["root"])
    async def root(request: Request) -> dict:
        cfg = request.app.state.container.settings if request.app.state.container else settings
        return {
            "status": "ok",
            "service": cfg.APP_NAME,
            "environment": cfg.ENVIRONMENT,
        }

    # API v1
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(sessions_router, prefix="/api/v1")
    app.include_router(security_router, prefix="/api/v1")

    return app


app = create_app()

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dronedispatch.core.config import Settings
from dronedispatch.core.context import AppContext
from dronedispatch.core.exceptions import DroneServiceError
from dronedispatch.core.logging import configure_logging
from dronedispatch.routers import admin_router, drones_router, medications_router

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)
    context = AppContext(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await context.start()
        yield
        await context.stop()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Drone fleet and medication load tracking",
        lifespan=lifespan
    )
    app.state.context = context

    @app.exception_handler(DroneServiceError)
    async def drone_service_error_handler(request: Request, exc: DroneServiceError):
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.body())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Incomplete or mistyped payloads are plain rejected requests
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'][1:]) or 'body'}: {error['msg']}" for error in exc.errors()
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": f"Invalid payload: {problems}"})

    prefix = settings.API_PREFIX
    app.include_router(drones_router.router, prefix=f"{prefix}/drones", tags=["Drones"])
    app.include_router(medications_router.router, prefix=f"{prefix}/medications", tags=["Medications"])
    app.include_router(admin_router.router, prefix=f"{prefix}/audit", tags=["Battery Audit"])

    @app.get("/")
    def root():
        return {"message": f"{settings.PROJECT_NAME} is running"}

    return app


app = create_app()

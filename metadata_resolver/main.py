from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI
from starlette.requests import Request

from metadata_resolver.api.router import api_router
from metadata_resolver.core.config import get_settings
from metadata_resolver.core.telemetry import configure_logging, setup_telemetry, shutdown_telemetry
from metadata_resolver.services.metadata import get_metadata_service

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings.log_level)
    telemetry_runtime = setup_telemetry(settings)
    try:
        yield
    finally:
        shutdown_telemetry(telemetry_runtime)
        get_metadata_service().clear_cache()


app = FastAPI(title=settings.app_name, lifespan=lifespan)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    logger.info(
        "http request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


app.include_router(api_router)

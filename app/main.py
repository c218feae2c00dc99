from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes import router
from app.core.config import settings
from app.core.errors import AirscanError, DuplicateActiveLeakError, RecordNotFoundError
from app.core.logging import configure_logging, log_event
from app.db import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = configure_logging(settings.LOG_LEVEL)
    init_db()  # runs at startup
    log_event(logger, f"document store ready at {settings.DATABASE_PATH}", event="STARTUP")
    yield

app = FastAPI(
    title="AirScan Leak Service",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(router)

@app.exception_handler(AirscanError)
async def airscan_error_handler(request: Request, exc: AirscanError):
    if isinstance(exc, RecordNotFoundError):
        status_code = 404
    elif isinstance(exc, DuplicateActiveLeakError):
        status_code = 409
    else:
        status_code = 503
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_code": exc.error_code},
    )

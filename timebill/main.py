from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from timebill.core.errors import DomainError, InternalError
from timebill.core.logging import configure_logging
from timebill import models  # noqa: F401
from timebill.routers.approvals import router as approvals_router
from timebill.routers.auth import router as auth_router
from timebill.routers.billing import router as billing_router
from timebill.routers.rates import router as rates_router
from timebill.routers.reports import router as reports_router
from timebill.routers.time_entries import router as time_entries_router
from timebill.routers.timer import router as timer_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="Timebill",
    lifespan=lifespan,
)


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Unhandled exception", extra={"request_id": request_id, "path": request.url.path})
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    response.headers["X-Request-Id"] = request_id
    logger.info(
        "Request handled",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            "tenant_id": getattr(request.state, "tenant_id", None),
            "user_id": getattr(request.state, "user_id", None),
        },
    )
    return response


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("Domain failure", extra={"path": request.url.path, "detail": exc.message})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error", extra={"path": request.url.path})
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


app.include_router(auth_router)
app.include_router(timer_router)
app.include_router(approvals_router)
app.include_router(time_entries_router)
app.include_router(rates_router)
app.include_router(billing_router)
app.include_router(reports_router)


@app.get("/")
def root():
    return {"status": "Timebill running"}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": "1.0.0",
    }

"""
main.py — FastAPI application for the PCB RFQ Tracker

Wires logging, request middleware, exception handlers and routers.

Business Rules:
- Every response carries X-Request-ID and the standard security headers
- Errors always use {"status": "error", "message": ...}; 400 for bad
  input, 403 for ownership violations, 404 for missing RFQs, 500 otherwise
- Unexpected errors include the traceback only outside production
- Tables are created on startup outside production and tests; production
  schema is managed by Alembic

Called by: uvicorn (rfq_tracker.main:app)
Depends on: config, logging_config, database, routers
"""

import time
import traceback
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import APP_VERSION, settings
from .database import engine
from .exceptions import RfqError
from .logging_config import setup_logging
from .models import Base
from .routers import auth, rfqs
from .schemas.responses import ErrorResponse

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "X-API-Version": "v1",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if settings.environment not in ("production", "test"):
        Base.metadata.create_all(bind=engine)
        logger.info("Tables ready", database=engine.url.render_as_string(hide_password=True))
    logger.info("RFQ Tracker started", version=APP_VERSION, environment=settings.environment)
    yield
    engine.dispose()


app = FastAPI(title="PCB RFQ Tracker API", version=APP_VERSION, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request middleware ───────────────────────────────────────────────────


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start = time.perf_counter()
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)
        # bind() rather than kwargs: loguru would str.format() a path containing braces
        logger.bind(status=response.status_code, duration_ms=duration_ms).info(
            f"{request.method} {request.url.path} → {response.status_code}"
        )
    response.headers["X-Request-ID"] = request_id
    for header, value in SECURITY_HEADERS.items():
        response.headers[header] = value
    return response


# ── Exception handlers ───────────────────────────────────────────────────


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def _error(request: Request, status_code: int, message: str, **extra) -> JSONResponse:
    body = ErrorResponse(
        message=message, status_code=status_code, request_id=_request_id(request), **extra
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(RfqError)
async def rfq_error_handler(request: Request, exc: RfqError):
    return _error(request, exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = f"Route {request.url.path} not found"
    return _error(request, exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    detail = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in errors
    ]
    return _error(request, 400, message, detail=detail)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    trace = None
    if not settings.is_production:
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return _error(request, 500, str(exc) or "Internal Server Error", trace=trace)


# ── Routes ───────────────────────────────────────────────────────────────


@app.get("/health")
async def health():
    return {"status": "ok", "version": APP_VERSION, "environment": settings.environment}


app.include_router(auth.router)
app.include_router(rfqs.router)

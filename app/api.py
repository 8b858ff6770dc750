import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Ensure .env values are loaded even if uvicorn is launched without `dotenv run`.
# Settings are read at import time, so this runs before the app modules load.
load_dotenv(override=True)

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from app.routes import auth  # noqa: E402
from app.security import limiter  # noqa: E402
from core.config import CLEANUP_ENABLED, LOG_LEVEL  # noqa: E402
from core.database import init_db  # noqa: E402
from core.errors import AuthError, InternalFailure, RateLimited  # noqa: E402
from worker.cleanup import CleanupScheduler  # noqa: E402

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger("app")

cleanup = CleanupScheduler(limiter)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if CLEANUP_ENABLED:
        cleanup.start()
    try:
        yield
    finally:
        await cleanup.stop()


app = FastAPI(lifespan=lifespan)


app.include_router(auth.router)


@app.exception_handler(AuthError)
async def handle_auth_error(request: Request, exc: AuthError):
    body = {"error": exc.message}
    if isinstance(exc, RateLimited) and exc.reset_time is not None:
        body["resetTime"] = exc.reset_time
    return JSONResponse(body, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    return JSONResponse({"error": "Invalid input data"}, status_code=400)


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    log.exception("Unhandled error", extra={"path": request.url.path})
    failure = InternalFailure()
    return JSONResponse({"error": failure.message}, status_code=failure.status_code)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault(
        "Content-Security-Policy",
        "default-src 'self'; img-src 'self' data:; style-src 'self' 'unsafe-inline'; script-src 'self' 'unsafe-inline'; "
        "font-src 'self' data:; connect-src 'self';",
    )
    response.headers.setdefault("Cache-Control", "no-store")
    return response


@app.get("/health")
def health():
    return {"ok": True}

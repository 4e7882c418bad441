"""FastAPI entry point for the PalletPark web API."""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

load_dotenv(Path(__file__).resolve().with_name(".env"))

from palletpark.errors import (
    ConflictError,
    NotFoundError,
    ParkingError,
    StateTransitionError,
    ValidationError,
)
from palletpark_web.database import init_db
from palletpark_web.notifications import ConnectionRegistry
from palletpark_web.routes import admin, customers, events, operators, users

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[ParkingError], int] = {
    NotFoundError: 404,
    ConflictError: 409,
    ValidationError: 400,
    StateTransitionError: 400,
}


def status_code_for(exc: ParkingError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]
    return 400


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.connections = ConnectionRegistry()
    try:
        yield
    finally:
        logger.info(
            "Shutting down with %s open event connections",
            app.state.connections.connection_count(),
        )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject strict security headers for every HTTP response."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        response = await call_next(request)
        response.headers.setdefault(
            "Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload"
        )
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        return response


app = FastAPI(title="PalletPark", version="1.0.0", lifespan=lifespan)
app.add_middleware(SecurityHeadersMiddleware)
app.include_router(users.router)
app.include_router(admin.router)
app.include_router(customers.router)
app.include_router(operators.router)
app.include_router(events.router)


@app.exception_handler(ParkingError)
async def parking_error_handler(request: Request, exc: ParkingError) -> JSONResponse:
    code = status_code_for(exc)
    logger.info("%s %s failed with %s: %s", request.method, request.url.path, code, exc.message)
    return JSONResponse(status_code=code, content=exc.to_dict())


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


def run() -> None:
    """Helper to run the development server."""

    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    run()

"""Members Area - FastAPI application entrypoint."""
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import AppConfig, load_config, log_config_snapshot
from app.routers import web
from auth.errors import HashingError, Unauthenticated, Unauthorized
from auth.gate import AuthorizationGate
from auth.models import utcnow
from auth.password import PasswordHasher
from auth.roles import RoleAdministration
from auth.service import AuthenticationService
from auth.sessions import SessionManager
from persistence.db import Database, StorageError
from persistence.sessions import SessionStore
from persistence.users import CredentialStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with an X-Request-Id and log one line per request.

    Only metadata is logged: never form bodies, cookies or tokens.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        latency_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"request_id={request_id} method={request.method} path={request.url.path} "
            f"status={response.status_code} latency_ms={latency_ms:.2f}"
        )
        response.headers["X-Request-Id"] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response


def _register_error_handlers(app: FastAPI) -> None:
    """Translate auth outcomes and storage failures at the request boundary."""

    @app.exception_handler(Unauthenticated)
    async def unauthenticated_handler(request: Request, exc: Unauthenticated):
        return RedirectResponse(url="/login", status_code=302)

    @app.exception_handler(Unauthorized)
    async def unauthorized_handler(request: Request, exc: Unauthorized):
        return web.render_message("Not Authorized", "/members", "Members", status_code=403)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Storage failure on {request.url.path}: {exc}", exc_info=exc)
        return web.render_message(
            "Service unavailable", "/", "Home", status_code=503,
            detail="Please try again in a moment.",
        )

    @app.exception_handler(HashingError)
    async def hashing_error_handler(request: Request, exc: HashingError):
        logger.error(f"Hashing failure on {request.url.path}", exc_info=exc)
        return web.render_message("Something went wrong", "/signup", "Try again", status_code=500)

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return web.render_message(
                "404", "/", "Home", status_code=404, detail="Page not found."
            )
        return await http_exception_handler(request, exc)


def create_app(
    config: Optional[AppConfig] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Build the application and wire its services.

    Stores and services are created here and kept on app.state; route
    handlers reach them through app.dependencies.
    """
    if config is None:
        config = load_config()
    log_config_snapshot(config)

    database = Database(config.db_path)
    credentials = CredentialStore(database)
    session_store = SessionStore(database)

    sessions = SessionManager(
        session_store,
        ttl=timedelta(seconds=config.session_ttl_seconds),
        resave=config.session_resave,
        clock=clock or utcnow,
    )
    hasher = PasswordHasher(rounds=config.bcrypt_rounds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Create tables and drop sessions that expired while we were down
        database.init_db()
        sessions.purge_expired()
        yield
        database.close()

    app = FastAPI(
        title="Members Area",
        description="Login, signup and role-gated member/admin pages",
        version=config.service_version,
        lifespan=lifespan,
    )
    started_at = datetime.now(timezone.utc)

    app.state.config = config
    app.state.credentials = credentials
    app.state.sessions = sessions
    app.state.auth_service = AuthenticationService(
        credentials,
        hasher,
        sessions,
        bootstrap_admin_email=config.bootstrap_admin_email,
    )
    app.state.gate = AuthorizationGate(sessions)
    app.state.role_admin = RoleAdministration(
        credentials,
        sessions,
        revoke_sessions=config.revoke_sessions_on_role_change,
    )

    # Middleware stack (order matters - added in reverse execution order)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLogMiddleware)

    _register_error_handlers(app)
    app.include_router(web.router)

    @app.get("/health")
    async def health():
        """Health check with service observability."""
        return {
            "status": "healthy",
            "service": config.service_name,
            "version": config.service_version,
            "environment": config.environment,
            "started_at": started_at.isoformat(),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.config.port)

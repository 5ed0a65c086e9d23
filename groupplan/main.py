import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from groupplan.api import auth, health, plans
from groupplan.core.auth import SessionIssuer
from groupplan.core.config import AppConfig, Settings, ensure_app_config, settings
from groupplan.core.database import create_all_tables, get_db_session, init_engine
from groupplan.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_error_handler,
    unhandled_exception_handler,
)
from groupplan.core.logging import configure_logging
from groupplan.core.middleware.request_id import RequestIdMiddleware
from groupplan.core.secid import generate_secret
from groupplan.core.validation import EnvValidationError, validate_env
from groupplan.features.auth.providers import OAuthProvider, build_providers
from groupplan.features.users.repository import UserRepository

logger = logging.getLogger("groupplan")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting groupplan...")
    try:
        yield
    finally:
        logger.info("Stopping groupplan...")


def create_app(
    app_config: AppConfig,
    settings_obj: Optional[Settings] = None,
    providers: Optional[Dict[str, OAuthProvider]] = None,
) -> FastAPI:
    """Build the FastAPI application.

    The session issuer and OAuth providers are created here from the given
    config and stored on app.state; routes reach them through dependencies.
    """
    cfg = settings_obj or settings
    app = FastAPI(title="groupplan", lifespan=lifespan)

    if not app_config.session_secret:
        logger.info("No session_secret configured, sessions will not survive a restart")
    app.state.app_config = app_config
    app.state.session_issuer = SessionIssuer(
        app_config.session_secret or generate_secret(),
        ttl_seconds=cfg.SESSION_TTL_SECONDS,
    )
    app.state.oauth_providers = providers if providers is not None else build_providers(app_config)

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(plans.router)
    return app


def prepare_database(database_url: Optional[str] = None) -> None:
    """Create tables and seed authentication providers (idempotent)."""
    init_engine(database_url)
    create_all_tables()
    with get_db_session() as session:
        UserRepository(session).seed_providers()


def run() -> None:
    """Console entry point: load config, prepare the database and serve."""
    import uvicorn

    # Expose .env to os.getenv lookups such as SKIP_ENV_VALIDATION
    load_dotenv()
    configure_logging(settings.ENV, settings.LOG_LEVEL)

    try:
        app_config = ensure_app_config(settings.CONFIG_PATH, logger)
    except OSError:
        logger.error("Failed to create a config file at [%s], check your file permissions", settings.CONFIG_PATH)
        sys.exit(1)
    if app_config is None:
        sys.exit(1)

    try:
        validate_env(app_config=app_config)
    except EnvValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    prepare_database(settings.DATABASE_URL)
    app = create_app(app_config)
    uvicorn.run(app, host="0.0.0.0", port=app_config.port, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()

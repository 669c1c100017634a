"""
ESG Compliance Platform - FastAPI Application.
The application is assembled from an explicitly passed configuration record;
nothing here reads the process environment except the command line entry point.
"""
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Dict, Optional

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from esg_platform.billing.router import router as plans_router
from esg_platform.core.config import APP_NAME, VERSION, Config, ConfigurationError, load_from_environment
from esg_platform.core.database import create_engine_from_config, create_session_factory, init_db
from esg_platform.core.i18n import Translator, translate_request
from esg_platform.core.logger import configure_logging, logger
from esg_platform.core.middleware import install_middleware

# Generic HTTP errors rendered from the errors namespace when no custom detail was given
STATUS_MESSAGES = {
    401: "errors:unauthorized",
    403: "errors:forbidden",
    404: "errors:notFound",
    405: "errors:methodNotAllowed",
    429: "errors:tooManyRequests",
}


def init_error_reporting(config: Config) -> bool:
    """Starts Sentry when a DSN is configured. Returns whether reporting is enabled."""
    if not config.sentry.dsn:
        return False

    sentry_sdk.init(
        dsn=config.sentry.dsn,
        environment=config.environment,
        traces_sample_rate=1.0 if config.is_development else 0.1,
    )
    logger.info(f"Error reporting enabled ({config.environment})")
    return True


def create_app(config: Config, translator: Optional[Translator] = None) -> FastAPI:
    """Application factory wiring middleware, routes and error translation around `config`."""
    init_error_reporting(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle management (startup/shutdown hooks)."""
        configure_logging(config.logging.level)
        logger.info(f"Initializing {APP_NAME} v{VERSION} ({config.environment})")
        logger.info(f"Configuration: {config.summary()}")

        engine = create_engine_from_config(config.database)
        init_db(engine)
        app.state.db_engine = engine
        app.state.session_factory = create_session_factory(engine)

        yield

        logger.info("Graceful shutdown initiated...")
        engine.dispose()
        logger.info("Graceful shutdown completed")

    app = FastAPI(
        title=APP_NAME,
        version=VERSION,
        description="Multi-tenant platform for tracking ESG regulatory compliance.",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.translator = translator or Translator()

    install_middleware(app, config, app.state.translator)

    app.include_router(plans_router, prefix="/api/v1/plans", tags=["Plans"])

    @app.get("/health", tags=["Health"])
    def health_check() -> Dict[str, Any]:
        """
        Liveness probe endpoint for orchestration systems.
        """
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": config.environment,
            "version": VERSION,
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Renders HTTP errors as translated JSON payloads.
        """
        correlation_id = getattr(request.state, "correlation_id", "N/A")

        message = exc.detail
        if exc.status_code in STATUS_MESSAGES and exc.detail == HTTPStatus(exc.status_code).phrase:
            message = translate_request(request, STATUS_MESSAGES[exc.status_code])

        logger.info(
            f"HTTPException: {exc.status_code} | {request.method} {request.url.path}",
            extra={"correlation_id": correlation_id}
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "message": message,
                "path": request.url.path,
                "correlation_id": correlation_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        correlation_id = getattr(request.state, "correlation_id", "N/A")
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": translate_request(request, "validation:invalid"),
                "errors": jsonable_encoder(exc.errors()),
                "correlation_id": correlation_id,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception barrier.
        Logs stack traces with Correlation IDs and returns a sanitized 500 response.
        Runs outside the middleware chain, so the correlation id header is set here
        and security or CORS headers are absent.
        """
        correlation_id = getattr(request.state, "correlation_id", "N/A")

        logger.error(
            f"Unhandled exception: {str(exc)}",
            exc_info=True,
            extra={"correlation_id": correlation_id}
        )

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": translate_request(request, "errors:internal"),
                "correlation_id": correlation_id,
            },
            headers={"X-Correlation-ID": correlation_id},
        )

    return app


def main() -> None:
    """Command line entry point: load configuration from the environment and serve."""
    import uvicorn

    try:
        config = load_from_environment()
    except ConfigurationError as exc:
        configure_logging()
        logger.error(f"Failed to start application: {exc}")
        sys.exit(1)

    configure_logging(config.logging.level)
    uvicorn.run(
        create_app(config),
        host="0.0.0.0",  # nosec
        port=config.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()

"""
HTTP middleware chain: security headers, CORS, compression, request logging
with correlation ids, language detection and API rate limiting.
"""
import time
from typing import Awaitable, Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from esg_platform.core.config import Config
from esg_platform.core.i18n import LANGUAGE_COOKIE, Translator, translate_request
from esg_platform.core.logger import logger
from esg_platform.core.rate_limit import FixedWindowRateLimiter, rate_limit_headers

CallNext = Callable[[Request], Awaitable[Response]]

CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "style-src 'self' 'unsafe-inline'",
    "script-src 'self'",
    "img-src 'self' data: https:",
])

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]
CORS_HEADERS = ["Content-Type", "Authorization", "Accept-Language"]

RATE_LIMITED_PREFIX = "/api/"


def security_headers(config: Config) -> dict:
    headers = {
        "Content-Security-Policy": CONTENT_SECURITY_POLICY,
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "SAMEORIGIN",
        "Referrer-Policy": "no-referrer",
        "X-DNS-Prefetch-Control": "off",
    }
    if config.is_production:
        headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"
    return headers


def install_middleware(app: FastAPI, config: Config, translator: Translator) -> None:
    """
    Registers the middleware chain. Starlette runs the last registered middleware
    first, so registration goes from the innermost (rate limiting) outwards.
    """
    limiter = FixedWindowRateLimiter.from_config(config.rate_limit)

    @app.middleware("http")
    async def rate_limit(request: Request, call_next: CallNext) -> Response:
        if not request.url.path.startswith(RATE_LIMITED_PREFIX):
            return await call_next(request)

        client = request.client.host if request.client else "anonymous"
        decision = limiter.hit(client)
        headers = rate_limit_headers(decision)

        if not decision.allowed:
            headers["Retry-After"] = headers["RateLimit-Reset"]
            logger.warning(
                f"Rate limit exceeded for {client} on {request.url.path}",
                extra={"correlation_id": getattr(request.state, "correlation_id", "N/A")}
            )
            return JSONResponse(
                status_code=429,
                content={"success": False, "message": translate_request(request, "errors:tooManyRequests")},
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response

    @app.middleware("http")
    async def detect_language(request: Request, call_next: CallNext) -> Response:
        language = translator.detect_language(request)
        request.state.language = language

        response = await call_next(request)

        response.headers["Content-Language"] = language
        if request.cookies.get(LANGUAGE_COOKIE) != language:
            response.set_cookie(LANGUAGE_COOKIE, language, samesite="lax")
        return response

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next: CallNext) -> Response:
        """
        Injects a Correlation ID into the request context and propagates it to the response headers.
        """
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
        request.state.correlation_id = correlation_id

        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Process-Time"] = str(process_time)

        if config.is_development:
            line = f"{request.method} {request.url.path} {response.status_code} {process_time * 1000:.3f} ms"
        else:
            client = request.client.host if request.client else "-"
            line = (
                f'{client} "{request.method} {request.url.path} HTTP/{request.scope.get("http_version", "1.1")}" '
                f'{response.status_code} "{request.headers.get("referer", "-")}" '
                f'"{request.headers.get("user-agent", "-")}" {process_time:.3f}s'
            )
        logger.info(line, extra={"correlation_id": correlation_id})

        return response

    app.add_middleware(GZipMiddleware, minimum_size=1024)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors.origins),
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )

    headers = security_headers(config)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from logging.config import dictConfig
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from gateway.app import errors
from gateway.app.config import Settings, get_settings, safe_error_detail, validate_for_env
from gateway.app.errors import GatewayError
from gateway.app.middleware import RequestIdMiddleware
from gateway.app.observability import get_request_id, structured_log
from gateway.app.security import (
    apply_security_headers,
    client_ip,
    cors_headers,
    evaluate_origin,
    security_headers,
)
from gateway.app.service import TranslationService
from gateway.app.validation import check_request_line, validate_request


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        }
    },
    "root": {
        "level": "INFO",
        "handlers": ["console"],
    },
}


dictConfig(LOGGING_CONFIG)
logger = logging.getLogger(__name__)

APP_VERSION = "2.0.0"
# every method is routed so non-POST verbs get the gateway's own 405 body
_ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def _read_body(request: Request, settings: Settings) -> bytes:
    """Read the body in chunks, stopping as soon as it passes ``max_body_bytes``."""
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > settings.max_body_bytes:
            raise errors.text_too_long(settings.max_text_chars)
    return bytes(body)


def create_app(settings: Optional[Settings] = None, service: Optional[TranslationService] = None) -> FastAPI:
    settings = settings or get_settings()
    service = service or TranslationService(settings)
    started_at = time.monotonic()

    logging.getLogger().setLevel(settings.log_level.upper())
    summary = validate_for_env(settings)
    logger.info("[CFG] loaded", extra={"models": summary.get("models"), "issues": summary.get("issues")})

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await service.aclose()

    app = FastAPI(title="Translation Gateway", version=APP_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    async def gateway_endpoint(request: Request) -> Response:
        rid = get_request_id(request)
        try:
            return await _run_pipeline(request, rid)
        except GatewayError:
            raise
        except Exception as exc:  # noqa: BLE001
            structured_log(
                {"event": "gateway_failed", "request_id": rid, "detail": safe_error_detail(exc)},
                level=logging.ERROR,
            )
            raise errors.internal_error() from exc

    async def _run_pipeline(request: Request, rid: str) -> Response:
        decision = evaluate_origin(
            request.headers.get("origin"),
            request.headers.get("host"),
            allowed_origins=settings.cors_allowed_origins,
            trusted_suffixes=settings.cors_trusted_suffixes,
        )
        if not decision.allowed:
            structured_log(
                {"event": "cors_denied", "request_id": rid, "method": request.method, "origin": request.headers.get("origin")},
                level=logging.WARNING,
            )
            raise errors.cors_denied()
        request.state.cors_origin = decision.origin

        if request.method == "OPTIONS":
            headers = cors_headers(decision.origin, preflight=True, max_age_seconds=settings.cors_max_age_seconds)
            headers.update(security_headers())
            return Response(status_code=204, headers=headers)

        service.admit(client_ip(request.headers, settings.client_ip_header), request_id=rid)

        check_request_line(
            request.method,
            request.headers.get("content-type"),
            request.headers.get("content-length"),
            settings,
        )
        body = await _read_body(request, settings)
        translation_request = validate_request(
            request.method,
            request.headers.get("content-type"),
            body,
            settings,
        )

        result = await service.translate(translation_request, request_id=rid)

        response = JSONResponse(status_code=200, content=result.to_body())
        apply_security_headers(response, origin=decision.origin)
        return response

    app.add_api_route(settings.gateway_path, gateway_endpoint, methods=_ROUTED_METHODS)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {
            "status": "ok",
            "version": APP_VERSION,
            "uptime_seconds": int(time.monotonic() - started_at),
            "models": list(settings.gemini_models),
        }

    @app.exception_handler(GatewayError)
    async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
        response = JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.to_headers())
        apply_security_headers(response, origin=getattr(request.state, "cors_origin", None))
        return response

    # runs in ServerErrorMiddleware, outside RequestIdMiddleware, so its responses
    # carry no X-Request-ID; the gateway route converts its own failures first
    @app.exception_handler(Exception)
    async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:  # noqa: BLE001
        logger.exception("Unhandled error in request")
        response = JSONResponse(status_code=500, content=errors.internal_error().to_body())
        apply_security_headers(response, origin=getattr(request.state, "cors_origin", None))
        return response

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)

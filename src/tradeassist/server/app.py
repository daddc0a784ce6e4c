"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tradeassist import __version__
from tradeassist.chat.orchestrator import ChatOrchestrator
from tradeassist.config.schema import TradeAssistConfig
from tradeassist.errors import QuotaExceeded, RequestValidationFailed, TradeAssistError
from tradeassist.server.routes import create_router

logger = logging.getLogger(__name__)


async def _handle_app_error(request: Request, exc: TradeAssistError) -> JSONResponse:
    headers = {}
    if isinstance(exc, QuotaExceeded):
        headers["Retry-After"] = str(exc.retry_after_seconds)
    elif exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return await _handle_app_error(request, RequestValidationFailed("Invalid request", details))


def create_app(
    config: TradeAssistConfig, orchestrator: ChatOrchestrator | None = None
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: TradeAssist configuration
        orchestrator: Prebuilt orchestrator (built from ``config`` if None)

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="TradeAssist",
        description="Storefront shopping assistant with streaming chat",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Session-Id", "Retry-After"],
    )

    app.add_exception_handler(TradeAssistError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)

    app.include_router(create_router(config, orchestrator))

    return app

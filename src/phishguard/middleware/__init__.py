"""Middleware registration."""

from fastapi import FastAPI

from phishguard.config import Settings
from phishguard.middleware.access_log import AccessLogMiddleware
from phishguard.middleware.cors import setup_cors
from phishguard.middleware.error_handler import setup_error_handlers
from phishguard.middleware.logging import setup_logging
from phishguard.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware. Starlette runs them in reverse-add order (last added = outermost)."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIdMiddleware)  # outer to access log so request_id is bound first
    setup_cors(app, settings)

"""Middleware registration."""

from fastapi import FastAPI

from squadcheck.config import Settings
from squadcheck.middleware.error_handler import setup_error_handlers
from squadcheck.middleware.logging import setup_logging
from squadcheck.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and the request-id middleware."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)

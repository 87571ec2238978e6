"""FastAPI application entry point for the J-REIT search service."""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import ResponseValidationError, RequestValidationError
from app.logging.middleware import LoggingMiddleware
from app.core.router import register_routes
from app.core.database import init_db
from app.core.exceptions import BackendUnavailableError, InvalidSearchConditionError
from app.logging.exception_handlers import (
    response_validation_exception_handler,
    request_validation_exception_handler,
    invalid_search_condition_handler,
    backend_unavailable_handler,
    general_exception_handler,
    http_exception_handler,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def create_app() -> FastAPI:

    app = FastAPI(
        title="J-REIT Search",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    init_db()

    # Add request logger middleware
    app.add_middleware(LoggingMiddleware)

    # Response validation errors are not seen by the middleware
    app.add_exception_handler(ResponseValidationError, response_validation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(InvalidSearchConditionError, invalid_search_condition_handler)
    app.add_exception_handler(BackendUnavailableError, backend_unavailable_handler)
    app.add_exception_handler(Exception, general_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)

    return app

"""
Module for registering routes in the FastAPI application.
"""

from fastapi import FastAPI

from app.jreit.router import router as jreit_router


def register_routes(app: FastAPI) -> None:
    """
    Registers all the routes for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance.
    """
    app.include_router(jreit_router, prefix="/api")

"""HTTP service mode exposing docset status and refresh."""

from .app import create_app, run_service

__all__ = ["create_app", "run_service"]

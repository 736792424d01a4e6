"""REST API: FastAPI app factory, routes and schemas."""

from steam_pricer.api.app import create_app

__all__ = ["create_app"]

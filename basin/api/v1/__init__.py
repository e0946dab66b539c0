"""API v1: item routes and health."""

from basin.api.v1.router import api_router

__all__ = ["api_router"]

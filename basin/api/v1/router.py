"""API v1 router aggregation."""

from fastapi import APIRouter

from basin.api.v1.endpoints import health, items

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(items.router, prefix="/items", tags=["items"])

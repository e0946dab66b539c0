"""Application services."""

from basin.application.services.authorization_service import AuthorizationService

__all__ = ["AuthorizationService"]

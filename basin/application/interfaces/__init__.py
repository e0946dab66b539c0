"""Application ports."""

from basin.application.interfaces.services import ICacheService, IPermissionResolver

__all__ = ["ICacheService", "IPermissionResolver"]

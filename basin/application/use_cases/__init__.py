"""Use cases: request-level orchestration over services and persistence."""

from basin.application.use_cases.items import ItemsService

__all__ = ["ItemsService"]

"""Presentation-layer dependency injection (composition root).

Routes depend only on these; services are built from infrastructure here.
"""

from basin.api.v1.dependencies.db import get_db, get_db_transactional
from basin.api.v1.dependencies.items import (
    get_items_service,
    get_items_service_for_write,
)
from basin.api.v1.dependencies.principal import get_principal

__all__ = [
    "get_db",
    "get_db_transactional",
    "get_items_service",
    "get_items_service_for_write",
    "get_principal",
]

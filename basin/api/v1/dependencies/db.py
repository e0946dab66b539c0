"""DB session dependencies: plain for reads, transactional for writes."""

from basin.infrastructure.persistence.database import get_db, get_db_transactional

__all__ = ["get_db", "get_db_transactional"]

"""Application layer: ports, services, use cases and DTOs."""

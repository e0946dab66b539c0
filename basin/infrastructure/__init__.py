"""Infrastructure: persistence, dynamic SQL, cache, security, services."""

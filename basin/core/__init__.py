"""Core: settings, constants, exception handlers, lifespan, limiter, request context."""

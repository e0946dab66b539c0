"""HTTP middleware: request timeout and request ID.

Applied in basin.main; order matters (first added = outermost).
"""

from basin.middleware.request_id import RequestIDMiddleware
from basin.middleware.timeout import TimeoutMiddleware

__all__ = ["RequestIDMiddleware", "TimeoutMiddleware"]

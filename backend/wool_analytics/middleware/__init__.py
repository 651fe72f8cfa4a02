"""
Middleware package.
"""
from wool_analytics.middleware.error_handler import ErrorHandlerMiddleware
from wool_analytics.middleware.request_context import RequestContextMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "RequestContextMiddleware",
]

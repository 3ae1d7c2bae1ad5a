"""
Middleware package.
"""
from footfall.middleware.error_handler import ErrorHandlerMiddleware
from footfall.middleware.request_id import RequestIdMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "RequestIdMiddleware",
]

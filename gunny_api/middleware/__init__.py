"""Middleware package for Gunny API."""

from gunny_api.middleware.correlation import CorrelationIdMiddleware
from gunny_api.middleware.request_size_limit import RequestSizeLimitMiddleware
from gunny_api.middleware.security_headers import SecurityHeadersMiddleware

__all__ = ["CorrelationIdMiddleware", "RequestSizeLimitMiddleware", "SecurityHeadersMiddleware"]

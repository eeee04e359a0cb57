"""Middleware package for FastAPI application"""
from habitpush.middleware.logging_middleware import RequestLoggingMiddleware

__all__ = ['RequestLoggingMiddleware']

"""
API Gateway Module

Owns the FastAPI application, its middleware stack and router registration.
"""
from .gateway import APIGateway

__all__ = ["APIGateway"]

from .base import AuthServiceInterface
from .static_auth import StaticTokenAuthService
from .factory import AuthServiceFactory

__all__ = ["AuthServiceInterface", "StaticTokenAuthService", "AuthServiceFactory"]

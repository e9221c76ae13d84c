"""Core application components."""
from app.core.interfaces import IUserRepository

__all__ = ["IUserRepository"]

"""Storage module."""

from .storage import ISessionStore, IStorage, Storage

__all__ = ["ISessionStore", "IStorage", "Storage"]

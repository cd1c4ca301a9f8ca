from .base import StorageConnector

__all__ = ["StorageConnector"]

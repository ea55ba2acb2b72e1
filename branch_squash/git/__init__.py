"""Repository backends for the squash engine."""

from .interface import RepositoryGateway
from .operations import GitOperations
from .memory import MemoryRepository

__all__ = ["RepositoryGateway", "GitOperations", "MemoryRepository"]

# coachhub/repositories/__init__.py
"""
Repository layer for the CoachHub platform.

Repositories own all query construction; services own transactions.
"""

from .base_repository import BaseRepository, IRepository
from .factory import RepositoryFactory

__all__ = ["BaseRepository", "IRepository", "RepositoryFactory"]

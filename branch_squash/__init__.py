"""
Branch Squash Tool

Collapses the commits unique to the current branch into a single commit on
top of its merge base with an upstream branch.
"""

__version__ = "1.0.0"

from .core.config import SquashConfig
from .core.types import (
    CommitRef, SquashPlan, SquashResult, SquashState,
    BranchSquashError, StoreError, DirtyRepoError, SymbolicReferenceError
)
from .git.interface import RepositoryGateway
from .git.operations import GitOperations
from .git.memory import MemoryRepository
from .tool import SquashEngine

__all__ = [
    "SquashConfig",
    "CommitRef",
    "SquashPlan",
    "SquashResult",
    "SquashState",
    "BranchSquashError",
    "StoreError",
    "DirtyRepoError",
    "SymbolicReferenceError",
    "RepositoryGateway",
    "GitOperations",
    "MemoryRepository",
    "SquashEngine"
]

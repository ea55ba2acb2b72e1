"""Core functionality for branch squash tool."""

from .config import SquashConfig
from .types import (
    CommitRef, Reference, Signature, StatusFlag, WorkingState,
    SquashPlan, SquashResult, SquashState,
    BranchSquashError, StoreError, NotARepositoryError, BranchNotFoundError,
    NoCommonAncestorError, ReferenceUpdateError, DirtyRepoError,
    SymbolicReferenceError
)
from .validator import PreconditionValidator
from .planner import RangeComputer

__all__ = [
    "SquashConfig",
    "CommitRef", "Reference", "Signature", "StatusFlag", "WorkingState",
    "SquashPlan", "SquashResult", "SquashState",
    "BranchSquashError", "StoreError", "NotARepositoryError", "BranchNotFoundError",
    "NoCommonAncestorError", "ReferenceUpdateError", "DirtyRepoError",
    "SymbolicReferenceError",
    "PreconditionValidator", "RangeComputer"
]

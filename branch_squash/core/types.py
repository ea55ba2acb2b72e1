"""Type definitions for the branch squash tool."""

from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from typing import Dict, List, Optional


class StatusFlag(Flag):
    """Per-path status bits for the index and the working tree."""
    CURRENT = 0
    INDEX_NEW = auto()
    INDEX_MODIFIED = auto()
    INDEX_DELETED = auto()
    INDEX_RENAMED = auto()
    INDEX_TYPECHANGE = auto()
    WT_NEW = auto()
    WT_MODIFIED = auto()
    WT_DELETED = auto()
    WT_TYPECHANGE = auto()
    WT_RENAMED = auto()
    IGNORED = auto()
    CONFLICTED = auto()


DIRTY_FLAGS = (
    StatusFlag.INDEX_NEW
    | StatusFlag.INDEX_MODIFIED
    | StatusFlag.INDEX_DELETED
    | StatusFlag.INDEX_RENAMED
    | StatusFlag.INDEX_TYPECHANGE
    | StatusFlag.WT_NEW
    | StatusFlag.WT_MODIFIED
    | StatusFlag.WT_DELETED
    | StatusFlag.WT_TYPECHANGE
    | StatusFlag.WT_RENAMED
    | StatusFlag.CONFLICTED
)


@dataclass
class WorkingState:
    """Combined index and working tree status, keyed by path."""
    entries: Dict[str, StatusFlag] = field(default_factory=dict)

    def dirty_paths(self) -> List[str]:
        """Paths carrying any flag that makes the repository dirty."""
        return sorted(path for path, flags in self.entries.items() if flags & DIRTY_FLAGS)

    @property
    def is_clean(self) -> bool:
        return not self.dirty_paths()


@dataclass(frozen=True)
class Signature:
    """Author or committer identity with a timestamp."""
    name: str
    email: str
    time: int  # seconds since the epoch
    offset: str = "+0000"

    def to_ident(self) -> str:
        """Format as a git identity line (``Name <email> 1700000000 +0000``)."""
        return f"{self.name} <{self.email}> {self.time} {self.offset}"


@dataclass(frozen=True)
class CommitRef:
    """An immutable commit object read from the store."""
    id: str
    tree: str
    parents: tuple
    message: str
    author: Signature
    committer: Signature

    @property
    def short_id(self) -> str:
        """Get short version of the commit id."""
        return self.id[:8]

    @property
    def subject(self) -> str:
        """First line of the message."""
        return self.message.split('\n', 1)[0]


@dataclass(frozen=True)
class Reference:
    """A named pointer, either direct (commit id) or symbolic (ref name)."""
    name: str
    target: Optional[str] = None
    symbolic_target: Optional[str] = None

    @property
    def is_symbolic(self) -> bool:
        return self.target is None


class SquashState(Enum):
    """States the squash engine moves through during a run."""
    VALIDATED = "validated"
    BASE_COMPUTED = "base-computed"
    RANGE_COMPUTED = "range-computed"
    NO_OP_EMPTY = "no-op-empty"
    NO_OP_SINGLE = "no-op-single"
    REWRITING = "rewriting"
    DONE = "done"


@dataclass
class SquashPlan:
    """Everything the read phase learns before any write happens."""
    head: str
    target_branch: str
    branch_tip: str
    merge_base: str
    commits: List[str]  # newest first
    current_branch: Optional[str] = None  # None when HEAD is detached

    @property
    def commit_count(self) -> int:
        return len(self.commits)

    @property
    def oldest(self) -> Optional[str]:
        """Oldest commit in the range, whose message is reused by default."""
        return self.commits[-1] if self.commits else None

    @property
    def newest(self) -> Optional[str]:
        return self.commits[0] if self.commits else None

    @property
    def branch_label(self) -> str:
        """``branch <name>``, or ``detached HEAD``."""
        return f"branch {self.current_branch}" if self.current_branch else "detached HEAD"

    def summary_stats(self) -> str:
        """Get summary statistics as string."""
        return (f"{self.commit_count} commits on top of {self.merge_base[:8]} "
                f"(merge base with {self.target_branch})")


@dataclass
class SquashResult:
    """Outcome of a single engine run."""
    state: SquashState
    plan: SquashPlan
    new_commit: Optional[str] = None
    tree: Optional[str] = None
    message: Optional[str] = None

    @property
    def squashed(self) -> bool:
        return self.new_commit is not None

    def describe(self) -> str:
        """Human readable line for the terminal."""
        if self.state is SquashState.NO_OP_EMPTY:
            return "No commits to squash"
        if self.state is SquashState.NO_OP_SINGLE:
            return "Only one commit to squash."
        if self.state is SquashState.DONE:
            return f"Squashed {self.plan.commit_count} commits into {self.new_commit[:8]}"
        return f"Would squash {self.plan.summary_stats()}"


class BranchSquashError(Exception):
    """Base exception for branch squash operations."""
    pass


class StoreError(BranchSquashError):
    """Raised when the backing version-control store fails."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class NotARepositoryError(StoreError):
    """Raised when no repository can be discovered."""
    pass


class BranchNotFoundError(StoreError):
    """Raised when a local branch does not exist."""

    def __init__(self, branch_name: str, cause: Optional[BaseException] = None):
        super().__init__(f"cannot locate local branch '{branch_name}'", cause)
        self.branch_name = branch_name


class NoCommonAncestorError(StoreError):
    """Raised when two commits share no history."""

    def __init__(self, one: str, two: str):
        super().__init__(f"no merge base found between {one[:8]} and {two[:8]}")
        self.one = one
        self.two = two


class ReferenceUpdateError(StoreError):
    """Raised when a reference moved underneath a compare-and-swap update."""
    pass


class DirtyRepoError(BranchSquashError):
    """Raised when the index or working tree has uncommitted changes."""

    def __init__(self, paths: Optional[List[str]] = None):
        super().__init__("The repo is dirty, please stash or commit changes")
        self.paths = paths or []


class SymbolicReferenceError(BranchSquashError):
    """Raised when the target branch is a symbolic reference."""

    def __init__(self, branch_name: str):
        super().__init__(f"{branch_name} is a symbolic reference cannot be used for squash")
        self.branch_name = branch_name

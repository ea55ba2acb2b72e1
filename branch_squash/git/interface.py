"""Abstract interface for repository backends."""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
from ..core.types import CommitRef, Reference, Signature, WorkingState


class RepositoryGateway(ABC):
    """Abstract interface for the object store the squash engine drives.

    Implementations discover their repository when constructed. Every method
    blocks until the store has answered and raises ``StoreError`` (or one of
    its subclasses) on failure.
    """

    @abstractmethod
    def status(self) -> WorkingState:
        """Combined index and working tree status for every reported path."""
        pass

    @abstractmethod
    def resolve_head(self) -> str:
        """Resolve ``HEAD`` to the id of the commit it currently points at."""
        pass

    @abstractmethod
    def current_branch(self) -> Optional[str]:
        """Name of the branch HEAD points at, or None when HEAD is detached."""
        pass

    @abstractmethod
    def find_branch(self, name: str) -> Reference:
        """Look up a local branch by name.

        Args:
            name: Short branch name (``main``, not ``refs/heads/main``)

        Returns:
            The branch reference. Symbolic references are returned as such,
            with ``target`` unset, and are never followed.

        Raises:
            BranchNotFoundError: if no local branch has that name
        """
        pass

    @abstractmethod
    def merge_base(self, one: str, two: str) -> str:
        """Best common ancestor of two commits.

        Raises:
            NoCommonAncestorError: if the histories are disconnected
        """
        pass

    @abstractmethod
    def walk(self, push: Sequence[str], hide: Sequence[str]) -> List[str]:
        """Walk the commit graph.

        Args:
            push: Commits whose ancestry is included
            hide: Commits whose ancestry is excluded

        Returns:
            Commit ids sorted newest first by commit time. Commits with equal
            timestamps list a child before its parent.
        """
        pass

    @abstractmethod
    def soft_reset(self, commit: str, expected: Optional[str] = None,
                   reason: str = "reset: moving") -> None:
        """Repoint HEAD (and the branch it names) without touching the index
        or the working tree.

        Args:
            commit: New target commit id
            expected: When given, the update only happens if HEAD still
                resolves to this id
            reason: Reflog message

        Raises:
            ReferenceUpdateError: if ``expected`` no longer matches
        """
        pass

    @abstractmethod
    def write_tree(self) -> str:
        """Write the current index as a tree object and return its id."""
        pass

    @abstractmethod
    def read_commit(self, commit: str) -> CommitRef:
        """Read a commit object, including its verbatim message."""
        pass

    @abstractmethod
    def default_signature(self) -> Signature:
        """The repository's configured identity, stamped with the current time."""
        pass

    @abstractmethod
    def create_commit(self, tree: str, parents: Sequence[str], message: str,
                      author: Signature, committer: Signature) -> str:
        """Create a commit object without moving any reference."""
        pass

"""Precondition checks run before anything is written."""

import logging
from .types import DirtyRepoError, SymbolicReferenceError, WorkingState

logger = logging.getLogger(__name__)


class PreconditionValidator:
    """Checks the working state and the target branch reference."""

    def __init__(self, gateway):
        self.gateway = gateway

    def check_clean(self, working_state: WorkingState) -> None:
        """Raise DirtyRepoError if any path has staged, unstaged or conflicted changes."""
        dirty = working_state.dirty_paths()
        if dirty:
            logger.debug("Dirty paths: %s", ", ".join(dirty))
            raise DirtyRepoError(dirty)

    def resolve_branch(self, name: str) -> str:
        """Resolve a local branch to the commit it points at.

        Symbolic branches are rejected instead of followed.
        """
        reference = self.gateway.find_branch(name)
        if reference.is_symbolic:
            logger.debug("%s points at %s", reference.name, reference.symbolic_target)
            raise SymbolicReferenceError(name)
        return reference.target

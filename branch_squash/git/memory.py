"""In-memory repository for exercising the squash engine without git.

MemoryRepository keeps a content-addressed commit graph, a set of references
and an index in plain dictionaries. History is built through the helper
methods (``commit_files``, ``create_branch``, ``checkout``), the gateway
methods then behave the way the git backend does.

Failures can be injected per gateway method via ``failures``, and every
mutation is recorded (``created_commits``, ``reflog``) for assertions.
"""

import hashlib
import logging
from typing import Dict, List, Optional, Sequence, Set
from .interface import RepositoryGateway
from ..core.types import (
    BranchNotFoundError, CommitRef, NoCommonAncestorError, Reference,
    ReferenceUpdateError, Signature, StatusFlag, StoreError, WorkingState
)

logger = logging.getLogger(__name__)

HEADS_PREFIX = "refs/heads/"


def _hash(kind: str, payload: str) -> str:
    return hashlib.sha1(f"{kind} {len(payload)}\0{payload}".encode('utf-8')).hexdigest()


class MemoryRepository(RepositoryGateway):
    """In-memory fake of a version-control object store."""

    def __init__(self,
                 initial_branch: str = "master",
                 name: str = "Test User",
                 email: str = "test@example.com",
                 start_time: int = 1_700_000_000,
                 failures: Optional[Dict[str, Exception]] = None):
        self.name = name
        self.email = email
        self.failures = dict(failures or {})

        self.commits: Dict[str, CommitRef] = {}
        self.trees: Dict[str, Dict[str, str]] = {}
        self.refs: Dict[str, Reference] = {}
        self.head = Reference(name="HEAD", symbolic_target=HEADS_PREFIX + initial_branch)
        self.index: Dict[str, str] = {}
        self.working_state = WorkingState()

        self.created_commits: List[str] = []
        self.reflog: List[tuple] = []

        self._clock = start_time
        self._generations: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # History building helpers
    # ------------------------------------------------------------------

    def tick(self) -> int:
        """Advance the fake clock by one second and return it."""
        self._clock += 1
        return self._clock

    def signature(self, time: Optional[int] = None) -> Signature:
        return Signature(self.name, self.email, time if time is not None else self.tick())

    def store_tree(self, files: Dict[str, str]) -> str:
        payload = "\n".join(f"{path}\0{content}" for path, content in sorted(files.items()))
        tree_id = _hash("tree", payload)
        self.trees[tree_id] = dict(files)
        return tree_id

    def commit_files(self, message: str, files: Optional[Dict[str, Optional[str]]] = None,
                     time: Optional[int] = None) -> str:
        """Commit on top of HEAD, like ``git commit -a``.

        ``files`` maps paths to new contents; a value of None deletes the path.
        HEAD (and the branch it names) advances to the new commit and the
        index follows it.
        """
        parent = self._head_target()
        contents = dict(self.trees[self.commits[parent].tree]) if parent else {}
        for path, content in (files or {}).items():
            if content is None:
                contents.pop(path, None)
            else:
                contents[path] = content

        sig = self.signature(time)
        commit_id = self._store_commit(self.store_tree(contents),
                                       [parent] if parent else [], message, sig, sig)
        self._set_head_target(commit_id)
        self.index = contents
        return commit_id

    def create_branch(self, name: str, commit: Optional[str] = None) -> None:
        target = commit or self._head_target()
        if target is None:
            raise StoreError("cannot create a branch on an unborn HEAD")
        self.refs[HEADS_PREFIX + name] = Reference(name=HEADS_PREFIX + name, target=target)

    def create_symbolic_branch(self, name: str, target_branch: str) -> None:
        self.refs[HEADS_PREFIX + name] = Reference(
            name=HEADS_PREFIX + name, symbolic_target=HEADS_PREFIX + target_branch)

    def checkout(self, name: str) -> None:
        """Point HEAD at a branch and load its tree into the index."""
        ref = self.refs.get(HEADS_PREFIX + name)
        if ref is None:
            raise BranchNotFoundError(name)
        self.head = Reference(name="HEAD", symbolic_target=ref.name)
        self.index = dict(self.trees[self.commits[ref.target].tree])

    def checkout_orphan(self, name: str) -> None:
        """Point HEAD at a branch that does not exist yet, with an empty index."""
        self.head = Reference(name="HEAD", symbolic_target=HEADS_PREFIX + name)
        self.index = {}

    def mark(self, path: str, flags: StatusFlag) -> None:
        """Record a status flag for a path, as if it had been edited."""
        entries = self.working_state.entries
        entries[path] = entries.get(path, StatusFlag.CURRENT) | flags

    def files_at(self, commit: str) -> Dict[str, str]:
        return dict(self.trees[self.commits[commit].tree])

    def snapshot(self) -> tuple:
        """Observable state, for before/after comparisons."""
        return (dict(self.refs), self.head, frozenset(self.commits),
                dict(self.index), len(self.reflog))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _maybe_fail(self, operation: str) -> None:
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def _head_target(self) -> Optional[str]:
        if not self.head.is_symbolic:
            return self.head.target
        ref = self.refs.get(self.head.symbolic_target)
        return ref.target if ref else None

    def _set_head_target(self, commit: str) -> None:
        if self.head.is_symbolic:
            name = self.head.symbolic_target
            self.refs[name] = Reference(name=name, target=commit)
        else:
            self.head = Reference(name="HEAD", target=commit)

    def _store_commit(self, tree: str, parents: Sequence[str], message: str,
                      author: Signature, committer: Signature) -> str:
        payload = "\n".join(
            [f"tree {tree}"]
            + [f"parent {p}" for p in parents]
            + [f"author {author.to_ident()}", f"committer {committer.to_ident()}", "", message]
        )
        commit_id = _hash("commit", payload)
        self.commits[commit_id] = CommitRef(
            id=commit_id, tree=tree, parents=tuple(parents), message=message,
            author=author, committer=committer)
        return commit_id

    def _ancestors(self, seeds: Sequence[str]) -> Set[str]:
        seen: Set[str] = set()
        stack = list(seeds)
        while stack:
            commit = stack.pop()
            if commit in seen:
                continue
            if commit not in self.commits:
                raise StoreError(f"object not found - no match for id ({commit})")
            seen.add(commit)
            stack.extend(self.commits[commit].parents)
        return seen

    def _generation(self, commit: str) -> int:
        if commit not in self._generations:
            parents = self.commits[commit].parents
            self._generations[commit] = 1 + max(
                (self._generation(p) for p in parents), default=0)
        return self._generations[commit]

    def _sort_key(self, commit: str) -> tuple:
        return (self.commits[commit].committer.time, self._generation(commit))

    # ------------------------------------------------------------------
    # RepositoryGateway
    # ------------------------------------------------------------------

    def status(self) -> WorkingState:
        self._maybe_fail("status")
        return WorkingState(dict(self.working_state.entries))

    def resolve_head(self) -> str:
        self._maybe_fail("resolve_head")
        target = self._head_target()
        if target is None:
            raise StoreError("reference 'HEAD' does not point at a commit")
        return target

    def current_branch(self) -> Optional[str]:
        if not self.head.is_symbolic:
            return None
        return self.head.symbolic_target[len(HEADS_PREFIX):]

    def find_branch(self, name: str) -> Reference:
        self._maybe_fail("find_branch")
        ref = self.refs.get(HEADS_PREFIX + name)
        if ref is None:
            raise BranchNotFoundError(name)
        return ref

    def merge_base(self, one: str, two: str) -> str:
        self._maybe_fail("merge_base")
        common = self._ancestors([one]) & self._ancestors([two])
        if not common:
            raise NoCommonAncestorError(one, two)
        # Drop every common ancestor that is itself an ancestor of another one
        best = {c for c in common
                if not any(c != other and c in self._ancestors([other]) for other in common)}
        return max(best, key=self._sort_key)

    def walk(self, push: Sequence[str], hide: Sequence[str]) -> List[str]:
        self._maybe_fail("walk")
        reachable = self._ancestors(push) - self._ancestors(hide)
        return sorted(reachable, key=self._sort_key, reverse=True)

    def soft_reset(self, commit: str, expected: Optional[str] = None,
                   reason: str = "reset: moving") -> None:
        self._maybe_fail("soft_reset")
        current = self._head_target()
        if expected is not None and current != expected:
            raise ReferenceUpdateError(
                f"HEAD moved away from {expected[:8]}, refusing to update")
        if commit not in self.commits:
            raise StoreError(f"object not found - no match for id ({commit})")
        self._set_head_target(commit)
        self.reflog.append((self.head.symbolic_target or "HEAD", current, commit, reason))
        logger.debug("Moved HEAD from %s to %s", (current or "")[:8], commit[:8])

    def write_tree(self) -> str:
        self._maybe_fail("write_tree")
        return self.store_tree(self.index)

    def read_commit(self, commit: str) -> CommitRef:
        self._maybe_fail("read_commit")
        try:
            return self.commits[commit]
        except KeyError:
            raise StoreError(f"object not found - no match for id ({commit})") from None

    def default_signature(self) -> Signature:
        self._maybe_fail("default_signature")
        return self.signature()

    def create_commit(self, tree: str, parents: Sequence[str], message: str,
                      author: Signature, committer: Signature) -> str:
        self._maybe_fail("create_commit")
        if tree not in self.trees:
            raise StoreError(f"object not found - no match for id ({tree})")
        for parent in parents:
            if parent not in self.commits:
                raise StoreError(f"object not found - no match for id ({parent})")
        commit_id = self._store_commit(tree, parents, message, author, committer)
        self.created_commits.append(commit_id)
        return commit_id

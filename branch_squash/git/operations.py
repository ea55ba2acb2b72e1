"""Git operations for the squash tool, backed by the git executable."""

import os
import re
import subprocess
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union
from ..core.types import (
    BranchNotFoundError, CommitRef, NoCommonAncestorError, NotARepositoryError,
    Reference, ReferenceUpdateError, Signature, StatusFlag, StoreError, WorkingState
)
from ..core.config import SquashConfig
from .interface import RepositoryGateway

logger = logging.getLogger(__name__)

IDENT_PATTERN = re.compile(
    r'^(?P<name>.*?) <(?P<email>[^>]*)> (?P<time>\d+) (?P<offset>[+-]\d{4})$')

CONFLICT_CODES = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}

INDEX_CODES = {
    'A': StatusFlag.INDEX_NEW,
    'C': StatusFlag.INDEX_NEW,
    'M': StatusFlag.INDEX_MODIFIED,
    'D': StatusFlag.INDEX_DELETED,
    'R': StatusFlag.INDEX_RENAMED,
    'T': StatusFlag.INDEX_TYPECHANGE,
}

WORKTREE_CODES = {
    'A': StatusFlag.WT_NEW,  # intent-to-add
    'M': StatusFlag.WT_MODIFIED,
    'D': StatusFlag.WT_DELETED,
    'R': StatusFlag.WT_RENAMED,
    'T': StatusFlag.WT_TYPECHANGE,
}


def parse_status_code(code: str) -> StatusFlag:
    """Translate a two letter porcelain v1 status code into flags."""
    if code in CONFLICT_CODES:
        return StatusFlag.CONFLICTED
    if code == "??":
        return StatusFlag.WT_NEW
    if code == "!!":
        return StatusFlag.IGNORED

    flags = StatusFlag.CURRENT
    flags |= INDEX_CODES.get(code[0], StatusFlag.CURRENT)
    flags |= WORKTREE_CODES.get(code[1], StatusFlag.CURRENT)
    return flags


def parse_status_output(output: str) -> WorkingState:
    """Parse ``git status --porcelain=v1 -z`` output."""
    state = WorkingState()
    tokens = output.split('\0')
    i = 0
    while i < len(tokens):
        entry = tokens[i]
        i += 1
        if not entry:
            continue
        code, path = entry[:2], entry[3:]
        # Renames and copies are followed by their source path
        if code[0] in 'RC' or code[1] in 'RC':
            i += 1
        state.entries[path] = state.entries.get(path, StatusFlag.CURRENT) | parse_status_code(code)
    return state


def parse_signature(ident: str) -> Signature:
    """Parse a git identity line such as ``Name <mail> 1700000000 +0100``."""
    match = IDENT_PATTERN.match(ident.strip())
    if not match:
        raise StoreError(f"Cannot parse git identity: {ident!r}")
    return Signature(
        name=match.group('name'),
        email=match.group('email'),
        time=int(match.group('time')),
        offset=match.group('offset'),
    )


def parse_commit(commit_id: str, raw: str) -> CommitRef:
    """Parse the output of ``git cat-file commit``."""
    header, _, message = raw.partition('\n\n')
    tree = None
    parents = []
    author = committer = None

    for line in header.split('\n'):
        if line.startswith(' '):
            # continuation of a multi-line header (gpgsig, mergetag)
            continue
        key, _, value = line.partition(' ')
        if key == 'tree':
            tree = value
        elif key == 'parent':
            parents.append(value)
        elif key == 'author':
            author = parse_signature(value)
        elif key == 'committer':
            committer = parse_signature(value)

    if tree is None or author is None or committer is None:
        raise StoreError(f"Malformed commit object {commit_id}")

    return CommitRef(
        id=commit_id,
        tree=tree,
        parents=tuple(parents),
        message=message,
        author=author,
        committer=committer,
    )


def parse_rev_list_times(output: str) -> List[str]:
    """Order ``git rev-list --date-order --format=%ct`` output newest first.

    Each commit appears as a ``commit <id>`` line followed by its commit
    time. Sorting is purely by commit time, even when clocks were skewed;
    the sort is stable, so equal timestamps keep rev-list's child-before-parent
    order.
    """
    entries = []
    commit_id = None
    for line in output.split('\n'):
        if line.startswith('commit '):
            commit_id = line[len('commit '):].strip()
        elif line and commit_id is not None:
            entries.append((int(line), commit_id))
            commit_id = None
    entries.sort(key=lambda entry: entry[0], reverse=True)
    return [commit_id for _, commit_id in entries]


class GitOperations(RepositoryGateway):
    """Handles all git operations for the squash tool."""

    def __init__(self, config: Optional[SquashConfig] = None,
                 path: Optional[Union[str, Path]] = None):
        self.config = config or SquashConfig()
        self.repo_root: Optional[Path] = None
        self.repo_root = self._discover_repository(path)

    def _run_git_command(self, cmd: List[str], check: bool = True,
                         input: Optional[Union[str, bytes]] = None,
                         env: Optional[dict] = None,
                         cwd: Optional[Path] = None,
                         binary: bool = False) -> subprocess.CompletedProcess:
        """Run a git command and return the result.

        With ``binary`` set, stdin and stdout are raw bytes so that commit
        messages survive untouched (line endings, non UTF-8 encodings).
        """
        full_cmd = [self.config.git_executable] + cmd
        logger.debug("Running git command: %s", " ".join(full_cmd))

        text_options = {} if binary else {'text': True, 'encoding': 'utf-8'}
        try:
            result = subprocess.run(
                full_cmd,
                cwd=cwd or self.repo_root,
                input=input,
                env=env,
                capture_output=True,
                check=check,
                **text_options
            )
            return result
        except subprocess.CalledProcessError as e:
            stderr = e.stderr
            if isinstance(stderr, bytes):
                stderr = stderr.decode('utf-8', errors='replace')
            logger.error("Git command failed: %s\nStderr: %s", " ".join(full_cmd), stderr)
            raise StoreError(f"Git command failed: {(stderr or '').strip()}", cause=e) from e
        except OSError as e:
            raise StoreError(f"Cannot run {self.config.git_executable}: {e}", cause=e) from e

    def _discover_repository(self, path: Optional[Union[str, Path]]) -> Path:
        """Find the top level of the repository containing ``path``."""
        start = Path(path) if path is not None else Path.cwd()
        try:
            result = self._run_git_command(["rev-parse", "--show-toplevel"], cwd=start)
        except StoreError as e:
            raise NotARepositoryError(
                "Not in a git repository. Please run this command from within a git repository.",
                cause=e.cause
            ) from e
        root = Path(result.stdout.strip())
        logger.debug("Git repository found at: %s", root)
        return root

    def status(self) -> WorkingState:
        untracked = "all" if self.config.include_untracked else "no"
        result = self._run_git_command(
            ["status", "--porcelain=v1", "-z", f"--untracked-files={untracked}"])
        return parse_status_output(result.stdout)

    def resolve_head(self) -> str:
        result = self._run_git_command(
            ["rev-parse", "--verify", "--quiet", "HEAD^{commit}"], check=False)
        if result.returncode != 0:
            raise StoreError("reference 'HEAD' does not point at a commit")
        return result.stdout.strip()

    def current_branch(self) -> Optional[str]:
        result = self._run_git_command(
            ["symbolic-ref", "--quiet", "--short", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def find_branch(self, name: str) -> Reference:
        refname = f"refs/heads/{name}"

        symbolic = self._run_git_command(
            ["symbolic-ref", "--quiet", refname], check=False)
        if symbolic.returncode == 0:
            return Reference(name=refname, symbolic_target=symbolic.stdout.strip())

        result = self._run_git_command(
            ["rev-parse", "--verify", "--quiet", f"{refname}^{{commit}}"], check=False)
        if result.returncode != 0:
            raise BranchNotFoundError(name)
        return Reference(name=refname, target=result.stdout.strip())

    def merge_base(self, one: str, two: str) -> str:
        result = self._run_git_command(["merge-base", one, two], check=False)
        if result.returncode == 0:
            return result.stdout.strip()
        if result.returncode == 1 and not result.stderr.strip():
            raise NoCommonAncestorError(one, two)
        raise StoreError(f"Git command failed: {result.stderr.strip()}")

    def walk(self, push: Sequence[str], hide: Sequence[str]) -> List[str]:
        cmd = (["rev-list", "--date-order", "--format=%ct"] + list(push)
               + [f"^{commit}" for commit in hide])
        result = self._run_git_command(cmd)
        return parse_rev_list_times(result.stdout)

    def soft_reset(self, commit: str, expected: Optional[str] = None,
                   reason: str = "reset: moving") -> None:
        logger.info("Moving HEAD to %s", commit[:8])
        cmd = ["update-ref", "-m", reason, "HEAD", commit]
        if expected is not None:
            cmd.append(expected)
        result = self._run_git_command(cmd, check=False)
        if result.returncode != 0:
            if expected is not None:
                raise ReferenceUpdateError(
                    f"HEAD moved away from {expected[:8]}, refusing to update: "
                    f"{result.stderr.strip()}")
            raise StoreError(f"Git command failed: {result.stderr.strip()}")

    def write_tree(self) -> str:
        result = self._run_git_command(["write-tree"])
        return result.stdout.strip()

    def read_commit(self, commit: str) -> CommitRef:
        result = self._run_git_command(["cat-file", "commit", commit], binary=True)
        return parse_commit(commit, result.stdout.decode('utf-8', errors='surrogateescape'))

    def default_signature(self) -> Signature:
        result = self._run_git_command(["var", "GIT_COMMITTER_IDENT"])
        return parse_signature(result.stdout)

    def create_commit(self, tree: str, parents: Sequence[str], message: str,
                      author: Signature, committer: Signature) -> str:
        """Create a new commit with specific metadata."""
        logger.debug("Creating commit with tree %s, parents %s",
                     tree[:8], ", ".join(p[:8] for p in parents))

        # Identity travels through the environment, the message through stdin
        env = os.environ.copy()
        env.update({
            'GIT_AUTHOR_NAME': author.name,
            'GIT_AUTHOR_EMAIL': author.email,
            'GIT_AUTHOR_DATE': f"{author.time} {author.offset}",
            'GIT_COMMITTER_NAME': committer.name,
            'GIT_COMMITTER_EMAIL': committer.email,
            'GIT_COMMITTER_DATE': f"{committer.time} {committer.offset}",
        })

        cmd = ["commit-tree", tree]
        for parent in parents:
            cmd.extend(["-p", parent])
        result = self._run_git_command(
            cmd, input=message.encode('utf-8', errors='surrogateescape'), env=env, binary=True)
        return result.stdout.decode('ascii').strip()

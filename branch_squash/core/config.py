"""Configuration management for branch squash tool."""

from dataclasses import dataclass
import os

MESSAGE_SOURCES = ("oldest", "newest")


@dataclass
class SquashConfig:
    """Configuration for branch squash operations."""

    # Upstream branch the current branch is squashed onto
    target_branch: str = "master"

    # Which commit of the range donates its message
    message_source: str = "oldest"

    # Untracked files count as worktree-new and make the repo dirty
    include_untracked: bool = True

    # Reflog entry written when HEAD is moved
    reflog_message: str = "squash: onto {branch}"

    git_executable: str = "git"

    def __post_init__(self):
        """Validate configuration parameters after initialization."""
        if not isinstance(self.target_branch, str) or not self.target_branch:
            raise ValueError(
                f"target_branch must be a non-empty string, got {self.target_branch!r}")

        # Reject names git would refuse as a branch
        invalid_chars = [' ', '\n', '\t', '..',
                         '~', '^', ':', '?', '*', '[', '\\']
        for char in invalid_chars:
            if char in self.target_branch:
                raise ValueError(
                    f"target_branch contains invalid character '{char}': {self.target_branch}")
        if self.target_branch.startswith('-'):
            raise ValueError(
                f"target_branch cannot start with '-': {self.target_branch}")

        if self.message_source not in MESSAGE_SOURCES:
            raise ValueError(
                f"message_source must be one of {MESSAGE_SOURCES}, got {self.message_source!r}")

        if not isinstance(self.reflog_message, str):
            raise ValueError(
                f"reflog_message must be a string, got {type(self.reflog_message)}")

        if not self.git_executable:
            raise ValueError("git_executable cannot be empty")

    @classmethod
    def from_cli_args(cls, args) -> 'SquashConfig':
        """Create config from command line arguments."""
        branch = getattr(args, 'branch', None) or os.environ.get(
            'GIT_SQUASH_BRANCH') or cls.target_branch
        try:
            return cls(
                target_branch=branch,
                message_source="newest" if getattr(
                    args, 'newest_message', False) else "oldest",
                include_untracked=not getattr(args, 'allow_untracked', False)
            )
        except ValueError as e:
            raise ValueError(
                f"Invalid configuration from command line arguments: {e}") from e

    def with_overrides(self, **kwargs) -> 'SquashConfig':
        """Create a new config with specific overrides."""
        fields = {field.name: getattr(self, field.name)
                  for field in self.__dataclass_fields__.values()}
        fields.update(kwargs)
        return SquashConfig(**fields)

    def reflog_for(self, branch: str) -> str:
        """Render the reflog message for a squash onto ``branch``."""
        return self.reflog_message.format(branch=branch)

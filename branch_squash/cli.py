"""Command line interface for the branch squash tool."""

from typing import Optional
import argparse
import logging
import os
import sys

from . import __version__
from .core.config import SquashConfig
from .core.types import BranchSquashError, SquashResult, SquashState
from .git.operations import GitOperations
from .tool import SquashEngine

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the command line argument parser."""
    parser = argparse.ArgumentParser(
        prog='git-squash',
        description='Utility to squash all commits on a branch relative to another branch',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                     # Squash onto master
  %(prog)s main                # Squash onto main
  %(prog)s main --dry-run      # Show what would be squashed

Environment Variables:
  GIT_SQUASH_BRANCH    Default upstream branch (instead of master)
  GIT_SQUASH_VERBOSE   Set to enable debug logging
        """
    )

    parser.add_argument(
        'branch',
        nargs='?',
        default=None,
        help='The upstream branch to squash commits of the current branch on to (default: master)'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show the commits that would be squashed without changing anything'
    )

    parser.add_argument(
        '--newest-message',
        action='store_true',
        help='Reuse the message of the newest commit instead of the oldest'
    )

    parser.add_argument(
        '--allow-untracked',
        action='store_true',
        help='Do not treat untracked files as uncommitted changes'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser


def printable(text: str) -> str:
    """Replace undecodable message bytes so the text can be printed."""
    return text.encode('utf-8', errors='surrogateescape').decode('utf-8', errors='replace')


def display_plan(result: SquashResult, engine: SquashEngine) -> None:
    """Show the commits a dry run would squash."""
    plan = result.plan
    print(f"On {plan.branch_label}")
    print(f"Would squash {plan.commit_count} commits onto {plan.merge_base[:8]} "
          f"(merge base with {plan.target_branch}):")
    for commit_id in plan.commits:
        commit = engine.gateway.read_commit(commit_id)
        print(f"  {commit.short_id} {printable(commit.subject)}")

    print("\nCommit message:")
    print("-" * 40)
    print(printable(result.message.rstrip('\n')))
    print("-" * 40)


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    parsed_args = parser.parse_args(args)

    env_verbose = bool(os.environ.get('GIT_SQUASH_VERBOSE', ""))
    setup_logging(parsed_args.verbose or env_verbose)

    try:
        config = SquashConfig.from_cli_args(parsed_args)
        logger.debug("Configuration: %s", config)

        engine = SquashEngine(GitOperations(config=config), config)
        result = engine.squash(config.target_branch, dry_run=parsed_args.dry_run)

        if result.state is SquashState.RANGE_COMPUTED:
            display_plan(result, engine)
            print("\nDry run complete. Run without --dry-run to apply changes.")
        else:
            print(result.describe())

        return 0

    except (BranchSquashError, ValueError) as e:
        logger.debug("Squash failed: %s", e, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user.", file=sys.stderr)
        return 1

    except Exception as e:
        logger.exception("Unexpected error: %s", e)
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

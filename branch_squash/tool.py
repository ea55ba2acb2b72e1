"""Main branch squash engine implementation."""

import logging
from typing import Optional
from .core.config import SquashConfig
from .core.types import SquashPlan, SquashResult, SquashState
from .core.validator import PreconditionValidator
from .core.planner import RangeComputer
from .git.interface import RepositoryGateway

logger = logging.getLogger(__name__)


class SquashEngine:
    """Collapses the commits unique to the current branch into one commit."""

    def __init__(self,
                 gateway: RepositoryGateway,
                 config: Optional[SquashConfig] = None):
        self.gateway = gateway
        self.config = config or SquashConfig()
        self.validator = PreconditionValidator(gateway)
        self.ranges = RangeComputer(gateway)
        self.state: Optional[SquashState] = None

    def _transition(self, state: SquashState) -> None:
        logger.debug("Squash state: %s -> %s",
                     self.state.value if self.state else "start", state.value)
        self.state = state

    def squash(self, branch: Optional[str] = None, dry_run: bool = False) -> SquashResult:
        """Squash the current branch onto ``branch``.

        Args:
            branch: Upstream branch name, defaults to the configured target
            dry_run: Stop after computing the range, without writing anything

        Returns:
            The result of the run. No-op and dry-run results carry the plan
            but no new commit.
        """
        self.state = None
        plan = self.prepare_squash_plan(branch or self.config.target_branch)

        if plan.commit_count == 0:
            self._transition(SquashState.NO_OP_EMPTY)
            logger.info("No commits to squash")
            return SquashResult(state=self.state, plan=plan)
        if plan.commit_count == 1:
            self._transition(SquashState.NO_OP_SINGLE)
            logger.info("Only one commit to squash")
            return SquashResult(state=self.state, plan=plan)

        if dry_run:
            logger.info("Dry run, not squashing %s", plan.summary_stats())
            return SquashResult(state=self.state, plan=plan,
                                message=self.squash_message(plan))

        return self.execute_squash_plan(plan)

    def prepare_squash_plan(self, branch: str) -> SquashPlan:
        """Run every read step: preconditions, merge base and commit range."""
        logger.info("Preparing squash plan onto %s", branch)

        self.validator.check_clean(self.gateway.status())
        head = self.gateway.resolve_head()
        branch_tip = self.validator.resolve_branch(branch)
        self._transition(SquashState.VALIDATED)

        base = self.ranges.merge_base(branch_tip, head)
        self._transition(SquashState.BASE_COMPUTED)

        commits = self.ranges.squash_range(head, base, exclude_from=branch_tip)
        self._transition(SquashState.RANGE_COMPUTED)

        plan = SquashPlan(
            head=head,
            target_branch=branch,
            branch_tip=branch_tip,
            merge_base=base,
            commits=commits,
            current_branch=self.gateway.current_branch()
        )
        logger.info("Plan complete: %s", plan.summary_stats())
        return plan

    def squash_message(self, plan: SquashPlan) -> str:
        """Message reused for the squashed commit, verbatim."""
        donor = plan.newest if self.config.message_source == "newest" else plan.oldest
        return self.gateway.read_commit(donor).message

    def execute_squash_plan(self, plan: SquashPlan) -> SquashResult:
        """Write the squashed commit and move HEAD onto it.

        Objects are written first; the compare-and-swap on HEAD is the only
        visible mutation, so a failure before it leaves every reference as
        it was.
        """
        self._transition(SquashState.REWRITING)
        logger.info("Squashing %d commits onto %s", plan.commit_count, plan.merge_base[:8])

        # The repository is clean, so the index holds HEAD's tree
        tree = self.gateway.write_tree()
        message = self.squash_message(plan)
        signature = self.gateway.default_signature()

        new_commit = self.gateway.create_commit(
            tree=tree,
            parents=[plan.merge_base],
            message=message,
            author=signature,
            committer=signature
        )
        logger.debug("Created commit %s", new_commit[:8])

        self.gateway.soft_reset(new_commit, expected=plan.head,
                                reason=self.config.reflog_for(plan.target_branch))

        self._transition(SquashState.DONE)
        logger.info("Squash complete: %s is now %s", plan.branch_label, new_commit[:8])
        return SquashResult(state=self.state, plan=plan, new_commit=new_commit,
                            tree=tree, message=message)

"""Merge base and squash range computation."""

import logging
from typing import List

logger = logging.getLogger(__name__)


class RangeComputer:
    """Finds the commits unique to the current branch."""

    def __init__(self, gateway):
        self.gateway = gateway

    def merge_base(self, one: str, two: str) -> str:
        base = self.gateway.merge_base(one, two)
        logger.debug("Merge base of %s and %s is %s", one[:8], two[:8], base[:8])
        return base

    def squash_range(self, head: str, base: str, exclude_from: str) -> List[str]:
        """Commits reachable from ``head`` or ``base`` but not from ``exclude_from``.

        The merge base is reachable from the target branch tip, so it bounds
        the walk and never shows up in the result. Ordered newest first.
        """
        commits = self.gateway.walk(push=[head, base], hide=[exclude_from])
        logger.debug("Found %d commits to squash", len(commits))
        return commits

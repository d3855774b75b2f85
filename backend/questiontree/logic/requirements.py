"""
Requirement Evaluator.

Checks a node's conditional-visibility criteria against a decision table.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..models import Criterion, Node


class RequirementEvaluator:
    """
    Evaluator for node requirements.

    A requirements mapping goes from question key to either a single
    answer key (exact match) or a list of acceptable answer keys
    (membership). Every criterion must hold. A question with no recorded
    decision never satisfies a criterion.
    """

    def evaluate(
        self,
        requirements: Optional[Mapping[str, Criterion]],
        decisions: Mapping[str, str]
    ) -> bool:
        """
        Evaluate a requirements mapping against decisions.

        Args:
            requirements: The criteria, or None.
            decisions: The current decision table.

        Returns:
            True if there are no requirements or all of them are met.
        """
        if not requirements:
            return True

        for key, criterion in requirements.items():
            if key not in decisions:
                return False
            if not self._matches(criterion, decisions[key]):
                return False
        return True

    def _matches(self, criterion: Criterion, decision: str) -> bool:
        """Check a single criterion."""
        if isinstance(criterion, str):
            return decision == criterion
        return decision in criterion

    def is_met(self, node: Any, decisions: Mapping[str, str]) -> bool:
        """
        Check a node's requirements.

        Bare option values (numbers, label strings) carry no requirements
        and always pass.
        """
        if not isinstance(node, Node):
            return True
        return self.evaluate(node.requirements, decisions)

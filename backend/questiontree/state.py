"""
Mutable traversal state owned by a single DecisionTree.

- DecisionTable: question key -> answer key
- QuestionRegistry: questions in the order they were asked
- SiblingChain: next-sibling links for question lists
- FactorAccumulator: question key -> multiplier
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Sequence, Set

from .logic.aggregate import apply_factors
from .models import QuestionNode

DecisionTable = Dict[str, str]


class QuestionRegistry:
    """
    Ordered record of every question that has been asked.

    Membership is by identity: two distinct question nodes are two entries
    even if their contents are equal. A question appears at most once.
    """

    def __init__(self):
        self._questions: List[QuestionNode] = []
        # ids of registered questions; entries in _questions keep them valid.
        self._ids: Set[int] = set()

    def push(self, question: QuestionNode) -> bool:
        """Append a question. Returns False if it was already registered."""
        if question in self:
            return False
        self._questions.append(question)
        self._ids.add(id(question))
        return True

    def index(self, question: QuestionNode) -> int:
        """Position of ``question`` in ask order, or -1."""
        for position, asked in enumerate(self._questions):
            if asked is question:
                return position
        return -1

    def prune_after(self, question: QuestionNode) -> List[QuestionNode]:
        """
        Remove every question asked after ``question``.

        Returns:
            The removed questions in ask order. Empty if ``question`` was
            never asked.
        """
        position = self.index(question)
        if position < 0:
            return []
        removed = self._questions[position + 1:]
        del self._questions[position + 1:]
        self._ids.difference_update(id(q) for q in removed)
        return removed

    def most_recent_first(self) -> Iterator[QuestionNode]:
        return reversed(list(self._questions))

    def keys(self) -> List[str]:
        return [q.key for q in self._questions]

    def __contains__(self, question: object) -> bool:
        return id(question) in self._ids

    def __iter__(self) -> Iterator[QuestionNode]:
        return iter(list(self._questions))

    def __len__(self) -> int:
        return len(self._questions)


class SiblingChain:
    """
    Next-sibling links between questions of a question list.

    Kept outside the tree so author-supplied nodes stay untouched and can
    be shared between instances.
    """

    def __init__(self):
        # id(question) -> (question, next sibling); the question is held so its id stays valid.
        self._links: Dict[int, tuple] = {}

    def link(self, questions: Sequence[QuestionNode]) -> None:
        """Chain ``questions`` left to right."""
        for current, following in zip(questions, questions[1:]):
            self._links[id(current)] = (current, following)

    def next_of(self, question: QuestionNode) -> Optional[QuestionNode]:
        entry = self._links.get(id(question))
        if entry is None or entry[0] is not question:
            return None
        return entry[1]


class FactorAccumulator:
    """Multipliers keyed by the question whose branch produced them."""

    def __init__(self):
        self._factors: Dict[str, float] = {}

    def record(self, question_key: str, factor: float) -> None:
        self._factors[question_key] = factor

    def discard(self, question_key: str) -> None:
        self._factors.pop(question_key, None)

    def apply(self, value: float) -> float:
        """Fold every factor into ``value``."""
        return apply_factors(value, self._factors.values())

    def snapshot(self) -> Dict[str, float]:
        return dict(self._factors)

    def __contains__(self, question_key: object) -> bool:
        return question_key in self._factors

    def __len__(self) -> int:
        return len(self._factors)

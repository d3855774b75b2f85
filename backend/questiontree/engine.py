"""
Traversal Engine.

Walks a question tree against a decision table:

    process -> ask -> answer -> advance -> complete

Questions without a usable decision are handed to the Presenter and the
walk suspends until the user answers through ``update``. Revising an
answer prunes everything asked after the revised question, fires the
incomplete notification, then reprocesses the new answer.

Each stage hands the next one to a step queue rather than calling it, so
the walk runs at constant stack depth however long or deep the tree is.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Set, Tuple, Union

from .events import COMPLETE, INCOMPLETE, CallbackQueue, EventHub, Listener
from .logic import RequirementEvaluator, average
from .models import (
    DEFAULT_OPTION,
    FactorNode,
    Node,
    QuestionListNode,
    QuestionNode,
    TreeConfig,
    ValueNode,
    is_number,
    option_label,
    parse_node,
)
from .presentation import HeadlessPresenter, OptionEntry, PresentationHandle, Presenter
from .state import DecisionTable, FactorAccumulator, QuestionRegistry, SiblingChain

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass(frozen=True)
class Result:
    """
    Snapshot produced by a completed pass.

    Attributes:
        value: Terminal value with every factor multiplied in.
        factors: Factors by question key.
        decisions: The full decision table.
    """

    value: float
    factors: Dict[str, float] = field(default_factory=dict)
    decisions: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "value": None if math.isnan(self.value) else self.value,
            "factors": dict(self.factors),
            "decisions": dict(self.decisions),
        }


class DecisionTree:
    """
    One evaluation of a question tree.

    Owns its decision table, question registry, sibling links and factors;
    none of them are shared with other instances. The tree definition is
    never modified.
    """

    def __init__(
        self,
        tree: Union[Node, Mapping[str, Any]],
        config: Optional[Union[TreeConfig, Mapping[str, Any]]] = None,
        presenter: Optional[Presenter] = None,
        scheduler: Optional[CallbackQueue] = None,
    ):
        """
        Initialize the tree instance.

        Args:
            tree: Root node, or author data to parse into one.
            config: Instance configuration or a mapping of its fields.
            presenter: Renders questions needing an answer. Defaults to a
                HeadlessPresenter.
            scheduler: Defers completion notifications.
        """
        if config is None:
            config = TreeConfig()
        elif not isinstance(config, TreeConfig):
            config = TreeConfig(**config)
        self.config = config
        self.tree = parse_node(tree)
        self.presenter = presenter or HeadlessPresenter(config)
        self.scheduler = scheduler or CallbackQueue()
        self.events = EventHub()
        self.evaluator = RequirementEvaluator()

        self.decisions: DecisionTable = dict(config.decisions)
        self.factors = FactorAccumulator()
        self.questions = QuestionRegistry()
        self.siblings = SiblingChain()
        self.handles: Dict[str, PresentationHandle] = {}
        self.answered: Set[str] = set()
        self.value: Optional[float] = None
        self.started = False

        self._steps: Deque[Tuple[Callable[..., None], tuple]] = deque()
        self._walking = False

    def on_complete(self, listener: Listener) -> "DecisionTree":
        """Call ``listener(result)`` after each completed pass."""
        self.events.subscribe(COMPLETE, listener)
        return self

    def on_incomplete(self, listener: Listener) -> "DecisionTree":
        """Call ``listener()`` whenever a revision invalidates later questions."""
        self.events.subscribe(INCOMPLETE, listener)
        return self

    def start(self) -> "DecisionTree":
        """Process the root node. Later calls do nothing."""
        if not self.started:
            self.started = True
            logger.debug(f"Starting decision tree {self.config.id}")
            self.process(self.tree)
        return self

    def _walk(self, step: Callable[..., None], *args: Any) -> None:
        """
        Run ``step`` and every step it hands on, one at a time.

        Each traversal step ends by handing on at most one further step, so
        the queue replaces the call chain and long question lists or deep
        trees never grow the stack. A step handed on while the walk is
        already running is queued behind the current one.
        """
        self._steps.append((step, args))
        if self._walking:
            return
        self._walking = True
        try:
            while self._steps:
                step, args = self._steps.popleft()
                step(*args)
        finally:
            self._walking = False
            self._steps.clear()

    def process(self, node: Any, parent_key: Optional[str] = None) -> None:
        """
        Dispatch a node.

        Args:
            node: The node to process.
            parent_key: Key of the question whose answer led here.
        """
        self._walk(self._process, node, parent_key)

    def _process(self, node: Any, parent_key: Optional[str]) -> None:
        if isinstance(node, QuestionNode):
            self.ask(node)
        elif isinstance(node, ValueNode):
            self.advance(node.value)
        elif isinstance(node, FactorNode):
            if parent_key is None:
                logger.warning(f"Ignoring factor {node.factor}: no parent question")
            else:
                self.factors.record(parent_key, node.factor)
            self.advance()
        elif isinstance(node, QuestionListNode):
            self.siblings.link(node.questions)
            self.ask(node.questions[0])
        else:
            self.advance()

    def ask(self, question: QuestionNode) -> None:
        """Ask a question, or answer it at once if the decision is known."""
        self._walk(self._ask, question)

    def _ask(self, question: QuestionNode) -> None:
        self.questions.push(question)

        if not self.requirements_met(question):
            logger.debug(f"Skipping '{question.key}': requirements not met")
            following = self.siblings.next_of(question)
            if following is not None:
                self.ask(following)
            else:
                self.advance()
            return

        has_decision = question.key in self.decisions

        # Labelled questions are shown unless a control already exists.
        if has_decision and (question.key in self.handles or not question.label):
            self.answer(question, self.decisions[question.key])
            return

        stale = self.handles.pop(question.key, None)
        if stale is not None:
            stale.destroy()

        handle = self.presenter.present(question, self.valid_options(question))
        self.handles[question.key] = handle
        self.answered.discard(question.key)
        handle.bind(self.update)
        logger.debug(f"Presented '{question.key}'")

        if has_decision:
            decision = self.decisions[question.key]
            if decision in question.options and self.requirements_met(question.options[decision]):
                handle.select(decision)
                self.answer(question, decision)

    def answer(self, question: QuestionNode, answer_key: str) -> None:
        """Record an answer and descend into the chosen branch."""
        self._walk(self._answer, question, answer_key)

    def _answer(self, question: QuestionNode, answer_key: str) -> None:
        self.decisions[question.key] = answer_key

        handle = self.handles.get(question.key)
        if handle is not None:
            handle.mark_answered()
            self.answered.add(question.key)

        if answer_key not in question.options and DEFAULT_OPTION not in question.options:
            logger.debug(f"No branch for '{question.key}'={answer_key!r}, averaging options")
            self.advance(average(question.options))
            return

        child = question.child_for(answer_key)
        if is_number(child):
            self.advance(child)
        else:
            self.process(child, question.key)

    def advance(self, value: Any = _UNSET) -> None:
        """
        Move on to the next unasked sibling question, or complete.

        Siblings of the most recently asked questions are tried first.

        Args:
            value: Optional; replaces the pending final value.
        """
        self._walk(self._advance, value)

    def _advance(self, value: Any) -> None:
        if value is not _UNSET:
            self.value = value

        for asked in self.questions.most_recent_first():
            following = self.siblings.next_of(asked)
            if following is not None and following not in self.questions:
                self.ask(following)
                return

        self.complete(self.value)

    def complete(self, value: Optional[float]) -> Result:
        """Fold the factors into ``value`` and schedule the completion notification."""
        if value is None:
            logger.warning("Completed without a terminal value")
            value = math.nan

        result = Result(
            value=self.factors.apply(value),
            factors=self.factors.snapshot(),
            decisions=dict(self.decisions),
        )
        logger.debug(f"Decision tree {self.config.id} complete: {result.value}")
        self.scheduler.schedule(self.events.emit, COMPLETE, result)
        return result

    def update(self, question: QuestionNode, answer_key: str) -> None:
        """Handle a selection made or changed by the user."""
        if question.key in self.decisions:
            self.prune_orphans(question)
        self.answer(question, answer_key)

    def prune_orphans(self, updated: QuestionNode) -> List[QuestionNode]:
        """
        Forget everything asked after ``updated``.

        Later questions leave the registry and lose their controls. Factors
        of ``updated`` and of the removed questions are cleared. Decisions
        are kept so a re-asked question can show its earlier answer.

        Returns:
            The removed questions.
        """
        removed: List[QuestionNode] = []
        if updated in self.questions:
            self.factors.discard(updated.key)
            removed = self.questions.prune_after(updated)
            for orphan in removed:
                self.factors.discard(orphan.key)
                self.answered.discard(orphan.key)
                handle = self.handles.pop(orphan.key, None)
                if handle is not None:
                    handle.destroy()
            logger.debug(f"Revision of '{updated.key}' orphaned {[q.key for q in removed]}")
        else:
            logger.debug(f"Revision of '{updated.key}', which was never asked")

        self.events.emit(INCOMPLETE)
        return removed

    def requirements_met(self, node: Any) -> bool:
        return self.evaluator.is_met(node, self.decisions)

    def valid_options(self, question: QuestionNode) -> List[OptionEntry]:
        """Options whose requirements currently pass."""
        return [
            OptionEntry(key=key, label=option_label(key, child), child=child)
            for key, child in question.options.items()
            if self.requirements_met(child)
        ]

    def pending_questions(self) -> List[QuestionNode]:
        """Presented questions still waiting for an answer, in ask order."""
        return [
            q for q in self.questions
            if q.key in self.handles and q.key not in self.answered
        ]

    def snapshot(self) -> Dict[str, Any]:
        """Current state, for debugging."""
        return {
            "id": self.config.id,
            "name": self.config.name,
            "value": self.value,
            "questions": self.questions.keys(),
            "presented": list(self.handles),
            "decisions": dict(self.decisions),
            "factors": self.factors.snapshot(),
        }

    def debug(self) -> None:
        logger.debug(f"Decision tree state: {self.snapshot()}")


def decision_tree(
    tree: Union[Node, Mapping[str, Any]],
    presenter: Optional[Presenter] = None,
    scheduler: Optional[CallbackQueue] = None,
    **options: Any,
) -> DecisionTree:
    """
    Build a DecisionTree and start it.

    Args:
        tree: Root node or author data.
        presenter: Optional presenter.
        scheduler: Optional completion scheduler.
        **options: TreeConfig fields (id, name, label, decisions).

    Returns:
        The started tree. Completion listeners attached right away still
        receive a completion reached during start.
    """
    return DecisionTree(
        tree,
        config=TreeConfig(**options),
        presenter=presenter,
        scheduler=scheduler,
    ).start()

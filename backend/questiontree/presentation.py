"""
Presentation collaborator contract.

The engine never builds controls itself. It asks a Presenter to render a
question with the options that are currently valid, and drives the
returned handle. User changes flow back through the callback bound on the
handle.

HeadlessPresenter is an in-memory implementation used by the CLI and in
tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .models import QuestionNode, TreeConfig

UpdateCallback = Callable[[QuestionNode, str], None]


@dataclass(frozen=True)
class OptionEntry:
    """One selectable answer offered for a question."""
    key: str
    label: str
    child: Any = None


class PresentationHandle(ABC):
    """A rendered control for one question."""

    @abstractmethod
    def bind(self, callback: UpdateCallback) -> None:
        """Register the callback invoked when the user changes the selection."""

    @abstractmethod
    def select(self, answer_key: str) -> None:
        """Set the selection without notifying the bound callback."""

    @abstractmethod
    def mark_answered(self) -> None:
        """Make the placeholder entry non-selectable."""

    @abstractmethod
    def current_value(self) -> Optional[str]:
        """The selected answer key, or None while the placeholder is shown."""

    @abstractmethod
    def destroy(self) -> None:
        """Remove the control."""


class Presenter(ABC):
    """Renders questions for the user."""

    @abstractmethod
    def present(self, question: QuestionNode, options: List[OptionEntry]) -> PresentationHandle:
        """
        Render ``question`` offering ``options`` plus a placeholder.

        Args:
            question: The question to render.
            options: Entries whose requirements currently pass.

        Returns:
            A handle for the rendered control.
        """


@dataclass
class HeadlessControl(PresentationHandle):
    """
    In-memory control.

    Attributes:
        question: The rendered question.
        options: Offered entries, in option order.
        element_id: Control identifier.
        field_name: Form-field name.
        placeholder: Text of the "no selection yet" entry.
        answered: Whether the placeholder has been disabled.
        destroyed: Whether the control has been removed.
    """

    question: QuestionNode
    options: List[OptionEntry]
    element_id: str
    field_name: str
    placeholder: str
    answered: bool = False
    destroyed: bool = False
    value: Optional[str] = None
    callback: Optional[UpdateCallback] = field(default=None, repr=False)
    presenter: Optional["HeadlessPresenter"] = field(default=None, repr=False)

    @property
    def option_keys(self) -> List[str]:
        return [entry.key for entry in self.options]

    def bind(self, callback: UpdateCallback) -> None:
        self.callback = callback

    def select(self, answer_key: str) -> None:
        self.value = answer_key

    def mark_answered(self) -> None:
        self.answered = True

    def current_value(self) -> Optional[str]:
        return self.value

    def destroy(self) -> None:
        self.destroyed = True
        if self.presenter is not None:
            self.presenter.forget(self)

    def choose(self, answer_key: str) -> None:
        """
        Simulate the user picking an option.

        Raises:
            ValueError: If ``answer_key`` was not offered or the control is gone.
        """
        if self.destroyed:
            raise ValueError(f"Control for '{self.question.key}' has been removed")
        if answer_key not in self.option_keys:
            raise ValueError(
                f"'{answer_key}' is not an option for '{self.question.key}'. "
                f"Offered: {self.option_keys}"
            )
        self.value = answer_key
        if self.callback is not None:
            self.callback(self.question, answer_key)


class HeadlessPresenter(Presenter):
    """Presenter that keeps rendered controls in memory, in render order."""

    def __init__(self, config: Optional[TreeConfig] = None):
        self.config = config or TreeConfig()
        self.controls: Dict[str, HeadlessControl] = {}

    def present(self, question: QuestionNode, options: List[OptionEntry]) -> HeadlessControl:
        control = HeadlessControl(
            question=question,
            options=list(options),
            element_id=self.config.element_id(question.key),
            field_name=self.config.field_name(question.key),
            placeholder=self.config.placeholder(question),
            presenter=self,
        )
        self.controls[question.key] = control
        return control

    def forget(self, control: HeadlessControl) -> None:
        if self.controls.get(control.question.key) is control:
            del self.controls[control.question.key]

    def control(self, question_key: str) -> HeadlessControl:
        """
        Look up the live control for a question.

        Raises:
            KeyError: If no control is rendered for ``question_key``.
        """
        return self.controls[question_key]

    def open_controls(self) -> List[HeadlessControl]:
        """Controls still showing their placeholder."""
        return [c for c in self.controls.values() if not c.answered]

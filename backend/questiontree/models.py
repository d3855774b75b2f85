"""
Pydantic models for Question-Tree definitions.

A tree is built from five node variants. Author data (plain dicts, usually
loaded from YAML) is turned into exactly one variant by ``parse_node``,
which checks the tags in a fixed precedence:

1. ``options`` mapping   -> QuestionNode
2. numeric ``value``     -> ValueNode
3. numeric ``factor``    -> FactorNode
4. non-empty ``questions`` list -> QuestionListNode
5. anything else         -> EmptyNode
"""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_OPTION = "default"
DEFAULT_LABEL = "- Select"

Criterion = Union[str, List[str]]


def is_number(value: Any) -> bool:
    """True for int/float values, excluding bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Node(BaseModel):
    """Common base for every node variant."""

    model_config = ConfigDict(frozen=True)

    label: Optional[str] = None
    requirements: Optional[Dict[str, Criterion]] = None

    @field_validator("requirements", mode="before")
    @classmethod
    def normalize_requirements(cls, v: Any) -> Any:
        """Coerce criteria to a string or a list of strings."""
        if v is None or not isinstance(v, Mapping):
            return v
        normalized: Dict[str, Criterion] = {}
        for key, criterion in v.items():
            if isinstance(criterion, (list, tuple, set, frozenset)):
                normalized[str(key)] = [str(c) for c in criterion]
            else:
                normalized[str(key)] = str(criterion)
        return normalized


class QuestionNode(Node):
    """A question offering keyed options."""

    key: str = Field(..., min_length=1)
    options: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("key", mode="before")
    @classmethod
    def stringify_key(cls, v: Any) -> Any:
        if is_number(v):
            return str(v)
        return v

    @field_validator("options", mode="before")
    @classmethod
    def parse_options(cls, v: Any) -> Any:
        if not isinstance(v, Mapping):
            return v
        return {str(key): parse_option(value) for key, value in v.items()}

    def child_for(self, answer_key: str) -> Any:
        """
        Resolve the child for an answer, falling back to ``default``.

        Returns None when neither the answer nor ``default`` is an option.
        Presence decides, so an option holding ``0`` is still a match.
        """
        if answer_key in self.options:
            return self.options[answer_key]
        return self.options.get(DEFAULT_OPTION)


class ValueNode(Node):
    """A terminal numeric value."""

    value: float

    @field_validator("value", mode="before")
    @classmethod
    def require_number(cls, v: Any) -> Any:
        if not is_number(v):
            raise ValueError("value must be a number")
        return v


class FactorNode(Node):
    """A multiplier recorded against the parent question's key."""

    factor: float

    @field_validator("factor", mode="before")
    @classmethod
    def require_number(cls, v: Any) -> Any:
        if not is_number(v):
            raise ValueError("factor must be a number")
        return v


class QuestionListNode(Node):
    """An ordered list of sibling questions."""

    questions: List[QuestionNode] = Field(..., min_length=1)

    @field_validator("questions", mode="before")
    @classmethod
    def parse_questions(cls, v: Any) -> Any:
        if not isinstance(v, (list, tuple)):
            return v
        return _parse_questions(v)


class EmptyNode(Node):
    """A node carrying none of the recognised tags."""


def _parse_questions(items: Any) -> List[QuestionNode]:
    questions = []
    for index, item in enumerate(items):
        node = parse_node(item)
        if isinstance(node, QuestionNode):
            questions.append(node)
        else:
            logger.warning(
                f"Dropping questions[{index}]: {type(node).__name__} is not a question"
            )
    return questions


def parse_option(value: Any) -> Any:
    """Parse one option value: numbers stay, mappings become nodes, others become labels."""
    if is_number(value) or isinstance(value, Node):
        return value
    if isinstance(value, Mapping):
        return parse_node(value)
    return str(value)


def parse_node(data: Any) -> Node:
    """
    Build the node variant matching ``data``.

    Args:
        data: A node instance or a mapping of author data.

    Returns:
        The parsed node. Data matching no tag, and questions without a
        key, become an EmptyNode.

    Raises:
        pydantic.ValidationError: If a question key is neither text nor a number.
    """
    if isinstance(data, Node):
        return data
    if not isinstance(data, Mapping):
        return EmptyNode()

    common = {
        "label": data.get("label"),
        "requirements": data.get("requirements"),
    }
    if common["label"] is not None:
        common["label"] = str(common["label"])

    if isinstance(data.get("options"), Mapping):
        key = data.get("key")
        if key is None or key == "":
            logger.warning(f"Ignoring question {common['label']!r}: it has options but no key")
            return EmptyNode(**common)
        return QuestionNode(key=key, options=data["options"], **common)
    if "value" in data and is_number(data["value"]):
        return ValueNode(value=data["value"], **common)
    if "factor" in data and is_number(data["factor"]):
        return FactorNode(factor=data["factor"], **common)
    questions = data.get("questions")
    if isinstance(questions, (list, tuple)) and questions:
        parsed = _parse_questions(questions)
        if parsed:
            return QuestionListNode(questions=parsed, **common)
    return EmptyNode(**common)


def option_label(key: str, child: Any) -> str:
    """Display label for an option: the child's label or the bare value."""
    if isinstance(child, Node):
        return child.label if child.label is not None else key
    return str(child)


class TreeConfig(BaseModel):
    """
    Per-instance configuration.

    Attributes:
        id: Unique instance identifier.
        name: Form-field naming prefix, derived from ``id`` when omitted.
        label: Placeholder text for unanswered questions.
        decisions: Pre-seeded decision table.
    """

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str] = Field(default_factory=lambda: random.randrange(1000))
    name: Optional[str] = None
    label: str = DEFAULT_LABEL
    decisions: Dict[str, str] = Field(default_factory=dict)

    @field_validator("decisions", mode="before")
    @classmethod
    def stringify_decisions(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, Mapping):
            return {str(key): str(answer) for key, answer in v.items()}
        return v

    @model_validator(mode="after")
    def derive_name(self) -> "TreeConfig":
        if not self.name:
            self.name = f"decision-tree[{self.id}]"
        return self

    def element_id(self, question_key: str) -> str:
        """Identifier for a question's control."""
        return f"decision-tree-{self.id}-question-{question_key}"

    def field_name(self, question_key: str) -> str:
        """Form-field name for a question's control."""
        return f"{self.name}[{question_key}]"

    def placeholder(self, question: QuestionNode) -> str:
        """Text of the non-selectable "no selection yet" entry."""
        if question.label:
            return f"{self.label} {question.label}"
        return self.label

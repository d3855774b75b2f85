"""
Question-Tree: declarative decision-tree evaluation.

Walks a tree of questions and answer branches against a decision table,
asking unanswered questions through a presenter, and resolves to a numeric
value scaled by the factors collected on the way.
"""

from .models import (
    Node,
    QuestionNode,
    ValueNode,
    FactorNode,
    QuestionListNode,
    EmptyNode,
    TreeConfig,
    parse_node,
)
from .engine import DecisionTree, Result, decision_tree
from .events import CallbackQueue
from .presentation import (
    OptionEntry,
    PresentationHandle,
    Presenter,
    HeadlessControl,
    HeadlessPresenter,
)
from .loader import load_tree, load_config, load_document, merge_configs, tree_from_yaml

__version__ = "1.0.0"
__all__ = [
    "Node",
    "QuestionNode",
    "ValueNode",
    "FactorNode",
    "QuestionListNode",
    "EmptyNode",
    "TreeConfig",
    "parse_node",
    "DecisionTree",
    "Result",
    "decision_tree",
    "CallbackQueue",
    "OptionEntry",
    "PresentationHandle",
    "Presenter",
    "HeadlessControl",
    "HeadlessPresenter",
    "load_tree",
    "load_config",
    "load_document",
    "merge_configs",
    "tree_from_yaml",
]

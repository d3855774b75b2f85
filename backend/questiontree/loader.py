"""
Tree Loader.

Reads tree definitions and instance configuration from YAML (or JSON,
which YAML accepts).

A document is either a bare tree:

    key: color
    label: Color
    options:
      red: {value: 100}
      default: {value: 0}

or carries the tree and its configuration side by side:

    tree: {...}
    config:
      id: picker
      decisions: {color: red}

Answer keys that YAML would read as booleans (yes/no/on/off) must be
quoted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .models import Node, TreeConfig, parse_node


@dataclass
class TreeDocument:
    """
    A loaded tree with its optional configuration.

    Attributes:
        tree: The parsed root node.
        config: The parsed ``config`` section, if any.
        config_data: The ``config`` section as written, for layering.
    """

    tree: Node
    config: Optional[TreeConfig] = None
    config_data: Dict[str, Any] = field(default_factory=dict)


def _load_mapping(yaml_content: str) -> Dict[str, Any]:
    data = yaml.safe_load(yaml_content)
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a mapping at the document root, got {type(data).__name__}"
        )
    return data


def tree_from_yaml(yaml_content: str) -> Node:
    """
    Parse a tree from YAML content.

    Raises:
        ValueError: If the document root is not a mapping.
        yaml.YAMLError: If the content is not valid YAML.
    """
    return parse_node(_load_mapping(yaml_content))


def config_from_yaml(yaml_content: str) -> TreeConfig:
    """Parse a TreeConfig from YAML content."""
    return TreeConfig(**_load_mapping(yaml_content))


def document_from_yaml(yaml_content: str) -> TreeDocument:
    """
    Parse a document that may hold ``tree`` and ``config`` sections.

    A document without a ``tree`` key is read as a bare tree.
    """
    data = _load_mapping(yaml_content)
    if "tree" not in data:
        return TreeDocument(tree=parse_node(data))

    config_data = data.get("config")
    config = None
    if config_data is not None:
        if not isinstance(config_data, dict):
            raise ValueError("'config' must be a mapping")
        config = TreeConfig(**config_data)
    return TreeDocument(
        tree=parse_node(data["tree"]),
        config=config,
        config_data=dict(config_data or {}),
    )


def _read(path: Union[str, Path]) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def load_tree(path: Union[str, Path]) -> Node:
    """Load a tree from a file."""
    return tree_from_yaml(_read(path))


def load_config(path: Union[str, Path]) -> TreeConfig:
    """Load a TreeConfig from a file."""
    return config_from_yaml(_read(path))


def load_config_data(path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration fields from a file without validating them."""
    return _load_mapping(_read(path))


def load_document(path: Union[str, Path]) -> TreeDocument:
    """Load a tree document from a file."""
    return document_from_yaml(_read(path))


def merge_configs(*layers: Optional[Mapping[str, Any]]) -> TreeConfig:
    """
    Build a TreeConfig from layered configuration mappings.

    Later layers override earlier ones field by field. Their ``decisions``
    are merged key by key instead of replacing the whole table. A ``name``
    is only derived from ``id`` when no layer sets one.

    Raises:
        ValueError: If a layer's ``decisions`` is not a mapping.
        pydantic.ValidationError: If the merged fields are invalid.
    """
    merged: Dict[str, Any] = {}
    decisions: Dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        layer_decisions = layer.get("decisions")
        if isinstance(layer_decisions, Mapping):
            decisions.update(layer_decisions)
        elif layer_decisions is not None:
            raise ValueError("'decisions' must be a mapping")
        merged.update((k, v) for k, v in layer.items() if k != "decisions")
    return TreeConfig(**merged, decisions=decisions)

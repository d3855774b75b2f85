"""
Logic for Question-Tree.

Provides requirement evaluation and numeric aggregation.
"""

from .requirements import RequirementEvaluator
from .aggregate import average, apply_factors

__all__ = ["RequirementEvaluator", "average", "apply_factors"]

"""
Command-line interface for Question-Tree.

Evaluates a tree file with seeded decisions, or walks it interactively.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Callable, Dict, List, Optional

import yaml

from .engine import DecisionTree, Result
from .events import CallbackQueue
from .loader import load_config_data, load_document, merge_configs
from .presentation import HeadlessControl, HeadlessPresenter

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]


def parse_decisions(items: Optional[List[str]]) -> Dict[str, str]:
    """
    Parse ``KEY=ANSWER`` pairs.

    Raises:
        ValueError: If an item has no ``=`` or an empty key.
    """
    decisions: Dict[str, str] = {}
    for item in items or []:
        key, sep, answer = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid decision '{item}'. Expected KEY=ANSWER")
        decisions[key.strip()] = answer.strip()
    return decisions


def format_result(result: Result) -> str:
    """Render a result as plain text."""
    lines = [f"Value: {result.value:g}"]
    if result.factors:
        lines.append("Factors:")
        lines.extend(f"  {key}: {factor:g}" for key, factor in result.factors.items())
    lines.append("Decisions:")
    lines.extend(f"  {key}: {answer}" for key, answer in result.decisions.items())
    return "\n".join(lines)


def prompt_control(control: HeadlessControl, input_fn: InputFn) -> Optional[str]:
    """
    Ask the user to pick an option for ``control``.

    Accepts an option number or an answer key. Returns None at end of input,
    or at once when the control offers no options.
    """
    print(control.placeholder)
    if not control.options:
        print(
            f"No options available for '{control.question.key}'; it cannot be answered",
            file=sys.stderr,
        )
        return None

    for number, entry in enumerate(control.options, 1):
        print(f"  {number}. {entry.label} [{entry.key}]")

    while True:
        try:
            raw = input_fn("> ").strip()
        except EOFError:
            return None
        if raw.isdigit() and 1 <= int(raw) <= len(control.options):
            return control.options[int(raw) - 1].key
        if raw in control.option_keys:
            return raw
        print(f"Please choose 1-{len(control.options)} or one of: {', '.join(control.option_keys)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="questiontree",
        description="Evaluate a question tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Evaluate with known answers
  questiontree shipping.yaml --decision size=large --decision speed=express

  # Answer the open questions on the terminal
  questiontree shipping.yaml --interactive
        """
    )

    parser.add_argument(
        "tree",
        help="YAML or JSON file holding the tree (optionally with a 'config' section)"
    )

    parser.add_argument(
        "--decision", "-d",
        action="append",
        metavar="KEY=ANSWER",
        help="Seed a decision (repeatable)"
    )

    parser.add_argument(
        "--config", "-c",
        help="YAML file with instance configuration (id, name, label, decisions), "
             "layered over the tree file's 'config' section"
    )

    parser.add_argument(
        "--interactive", "-i",
        action="store_true",
        help="Prompt for every question that still needs an answer"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    return parser


def main(argv: Optional[List[str]] = None, input_fn: InputFn = input) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        document = load_document(args.tree)
        layers = [document.config_data]
        if args.config:
            layers.append(load_config_data(args.config))
        layers.append({"decisions": parse_decisions(args.decision)})
        config = merge_configs(*layers)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    logger.debug(f"Loaded tree from {args.tree} with {len(config.decisions)} seeded decision(s)")

    queue = CallbackQueue()
    presenter = HeadlessPresenter(config)
    tree = DecisionTree(document.tree, config=config, presenter=presenter, scheduler=queue)
    results: List[Result] = []
    tree.on_complete(results.append)
    tree.start()
    queue.run_pending()

    while args.interactive and not results:
        open_controls = presenter.open_controls()
        if not open_controls:
            break
        answer = prompt_control(open_controls[0], input_fn)
        if answer is None:
            break
        open_controls[0].choose(answer)
        queue.run_pending()

    tree.debug()

    if not results:
        pending = [q.label or q.key for q in tree.pending_questions()]
        print("Incomplete. Unanswered questions:", file=sys.stderr)
        for label in pending:
            print(f"  - {label}", file=sys.stderr)
        return 1

    result = results[-1]
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_result(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())

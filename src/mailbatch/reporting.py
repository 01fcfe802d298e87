"""Terraform-style printout of the grouped calls a batch would make."""

from __future__ import annotations

import os
import sys

from mailbatch.engine.aggregator import Aggregation
from mailbatch.engine.session import SessionContext

GREEN = "\033[32m"
YELLOW = "\033[33m"
RED = "\033[31m"
DIM = "\033[2m"
CYAN = "\033[36m"
RESET = "\033[0m"


def use_color() -> bool:
    """Return True if stdout supports ANSI color and NO_COLOR is unset."""
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def color(text: str, code: str) -> str:
    """Wrap text in an ANSI color code if color is enabled."""
    if not use_color():
        return text
    return f"{code}{text}{RESET}"


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def _print_section(title: str, rows: list[tuple[str, str, str, int]], noun: str, out: object) -> None:
    """Print one step: a title, then ``symbol name (count)`` rows."""
    if not rows:
        return
    print(title, file=out)
    for symbol, code, name, count in rows:
        print(f"  {color(symbol, code)} {name:<30} {color(_plural(count, noun), DIM)}", file=out)
    print(file=out)


def print_plan(aggregation: Aggregation, session: SessionContext) -> None:
    """Print every grouped call in dispatch order, then a summary line.

    UNSET groups are not shown: they never produce a call.
    """
    out = sys.stdout
    noun = aggregation.kind.name
    sizes = aggregation.group_sizes()

    print(file=out)
    _print_section(
        "Labels to add",
        [("+", GREEN, name, n) for name, n in sizes["labels_to_add"].items()],
        noun,
        out,
    )
    _print_section(
        "Labels to remove",
        [("-", RED, name, n) for name, n in sizes["labels_to_remove"].items()],
        noun,
        out,
    )
    _print_section(
        "Categories",
        [("~", YELLOW, "reassign", n) for n in sizes["categories"].values()],
        noun,
        out,
    )
    for title, dimension in (("Move", "move"), ("Importance", "importance"), ("Read state", "read")):
        _print_section(
            title,
            [(">", CYAN, state, n) for state, n in sizes[dimension].items()],
            noun,
            out,
        )

    records = len(aggregation.entities)
    if records:
        bookkeeping = [("-", RED, session.unprocessed_label, records)]
        if session.processed_label:
            bookkeeping.insert(0, ("+", GREEN, session.processed_label, records))
        _print_section("Bookkeeping", bookkeeping, noun, out)

    groups = sum(len(dimension) for dimension in sizes.values())
    print(" · ".join([_plural(records, noun), _plural(groups, "group")]), file=out)

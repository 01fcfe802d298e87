"""Errors surfaced by the batch engine to its caller."""

from __future__ import annotations


class BatchError(Exception):
    """Base class: the batch was aborted."""


class MalformedInputError(BatchError, ValueError):
    """An Action Record or dataset violates the input contract.

    Raised before any mutation is dispatched. Also covers an entity that shows
    up in two groups of the same enum dimension.
    """


class ServiceCallError(BatchError, RuntimeError):
    """The mailbox service rejected or failed a grouped call.

    Steps already dispatched stay applied; later steps did not run.
    """

    def __init__(self, step: str, key: str, count: int) -> None:
        super().__init__(f"{step} failed for group '{key}' ({count} records)")
        self.step = step
        self.key = key
        self.count = count

"""Session Context: bookkeeping label names, label cache, and cutoff for one run."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from mailbatch.core.logging import get_logger
from mailbatch.engine.errors import MalformedInputError


@dataclass(frozen=True)
class Label:
    """A resolved label: its mailbox ID and display name."""

    id: str
    name: str


class LabelStore(Protocol):
    """Backend that owns labels (JMAP mailboxes in production)."""

    def find_label(self, name: str) -> str | None: ...

    def create_label(self, name: str) -> str: ...


def validate_label_name(name: object) -> str:
    """Return ``name`` if it is a usable label name, else raise MalformedInputError."""
    if not isinstance(name, str) or not name.strip():
        raise MalformedInputError(f"Invalid label name: {name!r}")
    return name


class SessionContext:
    """Shared state for one batch run.

    ``get_or_create_label`` is idempotent: a name resolves to the same
    ``Label`` for the whole run, and the store is asked at most once per name.
    """

    def __init__(
        self,
        store: LabelStore,
        processed_label: str = "",
        unprocessed_label: str = "@Unprocessed",
        cutoff: datetime | None = None,
    ) -> None:
        self._store = store
        self.processed_label = processed_label
        self.unprocessed_label = unprocessed_label
        self.cutoff = cutoff
        self._labels: dict[str, Label] = {}
        self._log = get_logger(component="session")

    def get_or_create_label(self, name: str) -> Label:
        """Resolve a label name, creating the label when it does not exist yet."""
        validate_label_name(name)
        label = self._labels.get(name)
        if label is not None:
            return label

        label_id = self._store.find_label(name)
        if label_id is None:
            label_id = self._store.create_label(name)
            self._log.info("label_created", label=name, label_id=label_id)

        label = Label(id=label_id, name=name)
        self._labels[name] = label
        return label

    def is_stale(self, received_at: datetime) -> bool:
        """True if ``received_at`` is not newer than the cutoff."""
        return self.cutoff is not None and received_at <= self.cutoff

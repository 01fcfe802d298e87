"""Action Record: the mutation intent computed for one thread or message."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Category(str, Enum):
    """Mutually exclusive mailbox categories. Declaration order is significant."""

    PRIMARY = "primary"
    SOCIAL = "social"
    PROMOTIONS = "promotions"
    UPDATES = "updates"
    FORUMS = "forums"


class MoveState(str, Enum):
    """Where the entity should end up.

    The ``RECORD_*`` variants move a single message even when the rest of the
    batch is grouped by thread.
    """

    UNSET = "unset"
    TO_INBOX = "to_inbox"
    TO_ARCHIVE = "to_archive"
    TO_TRASH = "to_trash"
    RECORD_TO_INBOX = "record_to_inbox"
    RECORD_TO_ARCHIVE = "record_to_archive"
    RECORD_TO_TRASH = "record_to_trash"


class Importance(str, Enum):
    UNSET = "unset"
    MARK_IMPORTANT = "mark_important"
    MARK_UNIMPORTANT = "mark_unimportant"


class ReadState(str, Enum):
    UNSET = "unset"
    THREAD_READ = "thread_read"
    THREAD_UNREAD = "thread_unread"
    RECORD_READ = "record_read"
    RECORD_UNREAD = "record_unread"


def category_complement(requested: set[Category] | frozenset[Category]) -> list[Category]:
    """Return every category not in ``requested``, in enumeration order."""
    return [category for category in Category if category not in requested]


@dataclass
class ActionRecord:
    """Intended mutations for one entity.

    Populated once by the rule stage; the dispatch engine only reads it.
    A label present in both ``labels_to_add`` and ``labels_to_remove`` ends
    up removed, because removals are dispatched after additions.
    """

    labels_to_add: set[str] = field(default_factory=set)
    labels_to_remove: set[str] = field(default_factory=set)
    category_set: set[Category] = field(default_factory=set)
    move_state: MoveState = MoveState.UNSET
    importance: Importance = Importance.UNSET
    read_state: ReadState = ReadState.UNSET

    def is_noop(self) -> bool:
        """True when no mutation was requested along any dimension."""
        return (
            not self.labels_to_add
            and not self.labels_to_remove
            and not self.category_set
            and self.move_state is MoveState.UNSET
            and self.importance is Importance.UNSET
            and self.read_state is ReadState.UNSET
        )

    def __str__(self) -> str:
        parts: list[str] = []
        if self.labels_to_add:
            parts.append(f"+labels={sorted(self.labels_to_add)}")
        if self.labels_to_remove:
            parts.append(f"-labels={sorted(self.labels_to_remove)}")
        if self.category_set:
            parts.append(f"categories={sorted(c.value for c in self.category_set)}")
        for value in (self.move_state, self.importance, self.read_state):
            if value.value != "unset":
                parts.append(value.value)
        return "[" + ", ".join(parts) + "]"

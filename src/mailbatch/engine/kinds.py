"""Entity kinds: the thread and message granularities of the engine.

A kind names the move and read-state values it accepts and, for each one,
which mailbox service operation carries it out and over what scope.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, NamedTuple

from mailbatch.engine.actions import MoveState, ReadState


class Scope(Enum):
    THREADS = "threads"  # one bulk call over the distinct parent threads
    RECORDS = "records"  # one bulk call over the records themselves
    EACH = "each"  # one single-record call per record


class Binding(NamedTuple):
    operation: str
    scope: Scope


@dataclass(frozen=True)
class EntityKind:
    name: str
    move_bindings: Mapping[MoveState, Binding]
    read_bindings: Mapping[ReadState, Binding]

    @property
    def move_states(self) -> list[MoveState]:
        """Accepted move states, UNSET first."""
        return [MoveState.UNSET, *self.move_bindings]

    @property
    def read_states(self) -> list[ReadState]:
        """Accepted read states, UNSET first."""
        return [ReadState.UNSET, *self.read_bindings]


_THREAD_MOVES = {
    MoveState.TO_INBOX: Binding("move_to_inbox", Scope.THREADS),
    MoveState.TO_ARCHIVE: Binding("move_to_archive", Scope.THREADS),
    MoveState.TO_TRASH: Binding("move_to_trash", Scope.THREADS),
}

_THREAD_READS = {
    ReadState.THREAD_READ: Binding("mark_threads_read", Scope.THREADS),
    ReadState.THREAD_UNREAD: Binding("mark_threads_unread", Scope.THREADS),
}

THREAD = EntityKind(
    name="thread",
    move_bindings=_THREAD_MOVES,
    read_bindings=_THREAD_READS,
)

MESSAGE = EntityKind(
    name="message",
    move_bindings={
        **_THREAD_MOVES,
        MoveState.RECORD_TO_INBOX: Binding("move_record_to_inbox", Scope.EACH),
        MoveState.RECORD_TO_ARCHIVE: Binding("move_record_to_archive", Scope.EACH),
        MoveState.RECORD_TO_TRASH: Binding("move_record_to_trash", Scope.EACH),
    },
    read_bindings={
        **_THREAD_READS,
        ReadState.RECORD_READ: Binding("mark_records_read", Scope.RECORDS),
        ReadState.RECORD_UNREAD: Binding("mark_records_unread", Scope.RECORDS),
    },
)

KINDS = {kind.name: kind for kind in (THREAD, MESSAGE)}

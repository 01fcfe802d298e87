"""Aggregator: partition a dataset into groups along every mutation dimension."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from mailbatch.engine.actions import ActionRecord, Category, Importance, MoveState, ReadState
from mailbatch.engine.dataset import Entity, EntityDataset, Handle, Thread
from mailbatch.engine.errors import MalformedInputError
from mailbatch.engine.kinds import Binding, EntityKind, Scope
from mailbatch.engine.session import validate_label_name


@dataclass
class Aggregation:
    """Grouped view of one dataset.

    ``move``, ``importance`` and ``read`` hold an entry for every value of the
    kind's vocabulary, UNSET included. ``entities`` is the dataset with exact
    duplicates collapsed, in dataset order.
    """

    kind: EntityKind
    entities: list[Entity] = field(default_factory=list)
    labels_to_add: dict[str, list[Handle]] = field(default_factory=dict)
    labels_to_remove: dict[str, list[Handle]] = field(default_factory=dict)
    move: dict[MoveState, list[Handle]] = field(default_factory=dict)
    importance: dict[Importance, list[Handle]] = field(default_factory=dict)
    read: dict[ReadState, list[Handle]] = field(default_factory=dict)

    @property
    def records(self) -> list[Handle]:
        return [entity.handle for entity in self.entities]

    @property
    def categorized(self) -> list[Entity]:
        """Entities that requested a category reassignment."""
        return [entity for entity in self.entities if entity.action.category_set]

    def group_sizes(self) -> dict[str, dict[str, int]]:
        """Return non-empty group sizes per dimension, for logs and reports."""

        def enum_sizes(groups: dict) -> dict[str, int]:
            return {
                key.value: len(members)
                for key, members in groups.items()
                if members and key.value != "unset"
            }

        return {
            "labels_to_add": {name: len(m) for name, m in self.labels_to_add.items()},
            "labels_to_remove": {name: len(m) for name, m in self.labels_to_remove.items()},
            "categories": {"records": len(self.categorized)} if self.categorized else {},
            "move": enum_sizes(self.move),
            "importance": enum_sizes(self.importance),
            "read": enum_sizes(self.read),
        }


def _check_vocabulary(kind: EntityKind, handle: Handle, action: ActionRecord) -> None:
    if not isinstance(action.move_state, MoveState) or action.move_state not in kind.move_states:
        raise MalformedInputError(
            f"Move state {action.move_state!r} is not supported for {kind.name} '{handle.id}'"
        )
    if not isinstance(action.importance, Importance):
        raise MalformedInputError(f"Invalid importance {action.importance!r} for '{handle.id}'")
    if not isinstance(action.read_state, ReadState) or action.read_state not in kind.read_states:
        raise MalformedInputError(
            f"Read state {action.read_state!r} is not supported for {kind.name} '{handle.id}'"
        )
    for category in action.category_set:
        if not isinstance(category, Category):
            raise MalformedInputError(f"Invalid category {category!r} for '{handle.id}'")


def _claim_thread(
    claims: dict[Thread, Enum],
    bindings: Mapping[Enum, Binding],
    value: Enum,
    handle: Handle,
    dimension: str,
) -> None:
    """Record the thread-level state ``handle`` asks for on its parent thread.

    Every message of a thread shares one thread-level call, so two messages
    asking for different thread-level states cannot both be honored.
    """
    binding = bindings.get(value)
    if binding is None or binding.scope is not Scope.THREADS:
        return
    previous = claims.setdefault(handle.thread, value)
    if previous is not value:
        raise MalformedInputError(
            f"Thread '{handle.thread.id}' gets conflicting {dimension} states "
            f"'{previous.value}' and '{value.value}'"
        )


def aggregate(dataset: EntityDataset) -> Aggregation:
    """Group every entity of ``dataset`` by label, move, importance and read state.

    Single pass over the dataset. Validates all input before returning, so a
    malformed record aborts the batch before any mutation is sent.

    Raises:
        MalformedInputError: On blank label names, values outside the kind's
            vocabulary, an entity listed twice with different enum values, or
            two messages of one thread asking for different thread-level
            move or read states.
    """
    kind = dataset.kind
    adds: dict[str, dict[Handle, None]] = {}
    removes: dict[str, dict[Handle, None]] = {}
    move: dict[MoveState, dict[Handle, None]] = {state: {} for state in kind.move_states}
    importance: dict[Importance, dict[Handle, None]] = {value: {} for value in Importance}
    read: dict[ReadState, dict[Handle, None]] = {state: {} for state in kind.read_states}

    seen: dict[Handle, tuple] = {}
    thread_moves: dict[Thread, Enum] = {}
    thread_reads: dict[Thread, Enum] = {}
    entities: list[Entity] = []

    for entity in dataset:
        handle, action = entity.handle, entity.action
        _check_vocabulary(kind, handle, action)

        signature = (
            action.move_state,
            action.importance,
            action.read_state,
            frozenset(action.category_set),
        )
        previous = seen.get(handle)
        if previous is None:
            seen[handle] = signature
            entities.append(entity)
        elif previous != signature:
            raise MalformedInputError(
                f"{kind.name.capitalize()} '{handle.id}' is listed twice with "
                f"conflicting actions"
            )

        _claim_thread(thread_moves, kind.move_bindings, action.move_state, handle, "move")
        _claim_thread(thread_reads, kind.read_bindings, action.read_state, handle, "read")

        # Sorted so group keys come out in the same order on every run
        for name in sorted(validate_label_name(n) for n in action.labels_to_add):
            adds.setdefault(name, {})[handle] = None
        for name in sorted(validate_label_name(n) for n in action.labels_to_remove):
            removes.setdefault(name, {})[handle] = None

        move[action.move_state][handle] = None
        importance[action.importance][handle] = None
        read[action.read_state][handle] = None

    return Aggregation(
        kind=kind,
        entities=entities,
        labels_to_add={name: list(group) for name, group in adds.items()},
        labels_to_remove={name: list(group) for name, group in removes.items()},
        move={state: list(group) for state, group in move.items()},
        importance={value: list(group) for value, group in importance.items()},
        read={state: list(group) for state, group in read.items()},
    )

"""Entity handles and the Entity Dataset consumed by one batch."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Union

from mailbatch.engine.actions import ActionRecord
from mailbatch.engine.kinds import EntityKind
from mailbatch.engine.session import SessionContext


@dataclass(frozen=True)
class Thread:
    """A conversation. ``email_ids`` are ordered oldest first."""

    id: str
    subject: str = ""
    email_ids: tuple[str, ...] = ()

    @property
    def thread(self) -> Thread:
        return self

    def __str__(self) -> str:
        return self.subject


@dataclass(frozen=True)
class Message:
    """A single email inside ``thread``."""

    id: str
    thread: Thread
    subject: str = ""

    def __str__(self) -> str:
        return self.subject


Handle = Union[Thread, Message]


@dataclass
class Entity:
    handle: Handle
    action: ActionRecord = field(default_factory=ActionRecord)


class EntityDataset:
    """Ordered (handle, Action Record) pairs plus the run's Session Context.

    Order only affects logging; every dimension is grouped independently.
    """

    def __init__(self, kind: EntityKind, session: SessionContext) -> None:
        self.kind = kind
        self.session = session
        self._entities: list[Entity] = []

    def add(self, handle: Handle, action: ActionRecord | None = None) -> ActionRecord:
        """Append an entity and return its Action Record for the rule stage to fill."""
        entity = Entity(handle, action if action is not None else ActionRecord())
        self._entities.append(entity)
        return entity.action

    @property
    def handles(self) -> list[Handle]:
        return [entity.handle for entity in self._entities]

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

"""Mailbox service interface consumed by the dispatcher."""

from __future__ import annotations

from typing import Protocol, Sequence

from mailbatch.engine.actions import Category
from mailbatch.engine.dataset import Handle, Message, Thread
from mailbatch.engine.session import Label


class MailboxService(Protocol):
    """Mutating operations of a mailbox backend.

    Bulk operations take one or more handles. Each call is expected to be
    atomic for the records it targets; nothing beyond that is assumed.
    """

    def add_label(self, label: Label, records: Sequence[Handle]) -> None: ...

    def remove_label(self, label: Label, records: Sequence[Handle]) -> None: ...

    def reassign_categories(
        self,
        record: Handle,
        add: Sequence[Category],
        remove: Sequence[Category],
    ) -> None: ...

    def move_to_inbox(self, threads: Sequence[Thread]) -> None: ...

    def move_to_archive(self, threads: Sequence[Thread]) -> None: ...

    def move_to_trash(self, threads: Sequence[Thread]) -> None: ...

    def move_record_to_inbox(self, record: Message) -> None: ...

    def move_record_to_archive(self, record: Message) -> None: ...

    def move_record_to_trash(self, record: Message) -> None: ...

    def mark_important(self, records: Sequence[Handle]) -> None: ...

    def mark_unimportant(self, records: Sequence[Handle]) -> None: ...

    def mark_threads_read(self, threads: Sequence[Thread]) -> None: ...

    def mark_threads_unread(self, threads: Sequence[Thread]) -> None: ...

    def mark_records_read(self, records: Sequence[Message]) -> None: ...

    def mark_records_unread(self, records: Sequence[Message]) -> None: ...

"""Mailbox service implementations: JMAP-backed and dry-run."""

from __future__ import annotations

from typing import Sequence

from mailbatch.clients.jmap import JMAPClient
from mailbatch.core.logging import get_logger
from mailbatch.engine.actions import Category
from mailbatch.engine.dataset import Handle, Message, Thread
from mailbatch.engine.session import Label, LabelStore

IMPORTANT = "$important"
SEEN = "$seen"


def email_ids_of(records: Sequence[Handle]) -> list[str]:
    """Expand handles to email IDs: a thread stands for all of its emails."""
    ids: dict[str, None] = {}
    for record in records:
        for email_id in record.email_ids if isinstance(record, Thread) else (record.id,):
            ids[email_id] = None
    return list(ids)


class JMAPMailbox:
    """MailboxService and LabelStore over JMAP.

    Labels and categories are mailboxes, moves swap the Inbox/Archive/Trash
    role mailboxes, importance is the ``$important`` keyword and read state is
    the ``$seen`` keyword. Every operation is one ``update_emails`` call.
    """

    def __init__(
        self,
        jmap: JMAPClient,
        mailbox_ids: dict[str, str],
        category_mailboxes: dict[Category, str],
    ) -> None:
        self._jmap = jmap
        self._inbox_id = mailbox_ids["Inbox"]
        self._archive_id = mailbox_ids["Archive"]
        self._trash_id = mailbox_ids["Trash"]
        self._category_ids = {
            category: mailbox_ids[name] for category, name in category_mailboxes.items()
        }
        self._label_ids: dict[str, str] | None = None

    # -- LabelStore -----------------------------------------------------------

    def find_label(self, name: str) -> str | None:
        if self._label_ids is None:
            self._label_ids = {}
            for mb in self._jmap.list_mailboxes():
                if mb["name"] not in self._label_ids or mb.get("parentId") is None:
                    self._label_ids[mb["name"]] = mb["id"]
        return self._label_ids.get(name)

    def create_label(self, name: str) -> str:
        label_id = self._jmap.create_mailbox(name)
        if self._label_ids is not None:
            self._label_ids[name] = label_id
        return label_id

    # -- MailboxService -------------------------------------------------------

    def _patch(self, records: Sequence[Handle], patch: dict) -> None:
        self._jmap.update_emails({email_id: dict(patch) for email_id in email_ids_of(records)})

    def add_label(self, label: Label, records: Sequence[Handle]) -> None:
        self._patch(records, {f"mailboxIds/{label.id}": True})

    def remove_label(self, label: Label, records: Sequence[Handle]) -> None:
        self._patch(records, {f"mailboxIds/{label.id}": None})

    def reassign_categories(
        self,
        record: Handle,
        add: Sequence[Category],
        remove: Sequence[Category],
    ) -> None:
        patch: dict = {f"mailboxIds/{self._category_ids[c]}": True for c in add}
        patch.update({f"mailboxIds/{self._category_ids[c]}": None for c in remove})
        self._patch([record], patch)

    def _inbox_patch(self) -> dict:
        return {
            f"mailboxIds/{self._inbox_id}": True,
            f"mailboxIds/{self._archive_id}": None,
            f"mailboxIds/{self._trash_id}": None,
        }

    def _archive_patch(self) -> dict:
        return {
            f"mailboxIds/{self._inbox_id}": None,
            f"mailboxIds/{self._archive_id}": True,
        }

    def _trash_patch(self) -> dict:
        return {
            f"mailboxIds/{self._inbox_id}": None,
            f"mailboxIds/{self._archive_id}": None,
            f"mailboxIds/{self._trash_id}": True,
        }

    def move_to_inbox(self, threads: Sequence[Thread]) -> None:
        self._patch(threads, self._inbox_patch())

    def move_to_archive(self, threads: Sequence[Thread]) -> None:
        self._patch(threads, self._archive_patch())

    def move_to_trash(self, threads: Sequence[Thread]) -> None:
        self._patch(threads, self._trash_patch())

    def move_record_to_inbox(self, record: Message) -> None:
        self._patch([record], self._inbox_patch())

    def move_record_to_archive(self, record: Message) -> None:
        self._patch([record], self._archive_patch())

    def move_record_to_trash(self, record: Message) -> None:
        self._patch([record], self._trash_patch())

    def mark_important(self, records: Sequence[Handle]) -> None:
        self._patch(records, {f"keywords/{IMPORTANT}": True})

    def mark_unimportant(self, records: Sequence[Handle]) -> None:
        self._patch(records, {f"keywords/{IMPORTANT}": None})

    def mark_threads_read(self, threads: Sequence[Thread]) -> None:
        self._patch(threads, {f"keywords/{SEEN}": True})

    def mark_threads_unread(self, threads: Sequence[Thread]) -> None:
        self._patch(threads, {f"keywords/{SEEN}": None})

    def mark_records_read(self, records: Sequence[Message]) -> None:
        self._patch(records, {f"keywords/{SEEN}": True})

    def mark_records_unread(self, records: Sequence[Message]) -> None:
        self._patch(records, {f"keywords/{SEEN}": None})


class DryRunMailbox:
    """MailboxService that logs each call instead of sending it.

    Label lookups go to ``labels`` (read-only) when given; labels that do not
    exist yet get a placeholder ID and are never created.
    """

    def __init__(self, labels: LabelStore | None = None) -> None:
        self._labels = labels
        self.calls: list[tuple[str, str, int]] = []
        self._log = get_logger(component="dry_run")

    def find_label(self, name: str) -> str | None:
        return self._labels.find_label(name) if self._labels is not None else None

    def create_label(self, name: str) -> str:
        self._log.info("would_create_label", label=name)
        return f"new:{name}"

    def _record(self, operation: str, key: str, records: Sequence[Handle]) -> None:
        self.calls.append((operation, key, len(records)))
        self._log.info(
            "would_call",
            operation=operation,
            key=key,
            count=len(records),
            ids=[record.id for record in records],
        )

    def add_label(self, label: Label, records: Sequence[Handle]) -> None:
        self._record("add_label", label.name, records)

    def remove_label(self, label: Label, records: Sequence[Handle]) -> None:
        self._record("remove_label", label.name, records)

    def reassign_categories(
        self,
        record: Handle,
        add: Sequence[Category],
        remove: Sequence[Category],
    ) -> None:
        self._record("reassign_categories", ",".join(c.value for c in add), [record])

    def move_to_inbox(self, threads: Sequence[Thread]) -> None:
        self._record("move_to_inbox", "inbox", threads)

    def move_to_archive(self, threads: Sequence[Thread]) -> None:
        self._record("move_to_archive", "archive", threads)

    def move_to_trash(self, threads: Sequence[Thread]) -> None:
        self._record("move_to_trash", "trash", threads)

    def move_record_to_inbox(self, record: Message) -> None:
        self._record("move_record_to_inbox", "inbox", [record])

    def move_record_to_archive(self, record: Message) -> None:
        self._record("move_record_to_archive", "archive", [record])

    def move_record_to_trash(self, record: Message) -> None:
        self._record("move_record_to_trash", "trash", [record])

    def mark_important(self, records: Sequence[Handle]) -> None:
        self._record("mark_important", IMPORTANT, records)

    def mark_unimportant(self, records: Sequence[Handle]) -> None:
        self._record("mark_unimportant", IMPORTANT, records)

    def mark_threads_read(self, threads: Sequence[Thread]) -> None:
        self._record("mark_threads_read", SEEN, threads)

    def mark_threads_unread(self, threads: Sequence[Thread]) -> None:
        self._record("mark_threads_unread", SEEN, threads)

    def mark_records_read(self, records: Sequence[Message]) -> None:
        self._record("mark_records_read", SEEN, records)

    def mark_records_unread(self, records: Sequence[Message]) -> None:
        self._record("mark_records_unread", SEEN, records)

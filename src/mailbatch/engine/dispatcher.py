"""Dispatcher: turn an Aggregation into grouped mailbox service calls.

Steps run in a fixed order and each waits for the previous call to return:

1. add labels          (one bulk call per label)
2. remove labels       (one bulk call per label, after adds: remove wins)
3. reassign categories (one call per record)
4. move                (per the entity kind's bindings)
5. importance          (one bulk call per value)
6. read state          (per the entity kind's bindings)
7. bookkeeping         (processed label on, unprocessed label off, whole batch)

A failing call aborts the batch: later steps, bookkeeping included, never run
and earlier steps are not rolled back.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping, Sequence

import structlog

from mailbatch.core.logging import get_logger
from mailbatch.engine.actions import Category, Importance, category_complement
from mailbatch.engine.aggregator import Aggregation, aggregate
from mailbatch.engine.dataset import EntityDataset, Handle
from mailbatch.engine.errors import BatchError, ServiceCallError
from mailbatch.engine.kinds import Binding, Scope
from mailbatch.engine.service import MailboxService
from mailbatch.engine.session import SessionContext

_IMPORTANCE_BINDINGS = {
    Importance.MARK_IMPORTANT: Binding("mark_important", Scope.RECORDS),
    Importance.MARK_UNIMPORTANT: Binding("mark_unimportant", Scope.RECORDS),
}


@dataclass
class BatchReport:
    """What one batch did: record count, calls issued, and group sizes."""

    kind: str
    records: int
    calls: int = 0
    groups: dict[str, dict[str, int]] = field(default_factory=dict)


@contextmanager
def _service_call(step: str, key: str, count: int) -> Iterator[None]:
    """Re-raise any backend failure as ServiceCallError naming the group."""
    try:
        yield
    except BatchError:
        raise
    except Exception as exc:
        raise ServiceCallError(step, key, count) from exc


class Dispatcher:
    """Issues the minimum set of grouped calls for one dataset.

    Holds no state between batches. Not safe to run concurrently on the same
    dataset or session.
    """

    def __init__(self, mailbox: MailboxService) -> None:
        self._mailbox = mailbox
        self._log = get_logger(component="dispatcher")

    def apply(self, dataset: EntityDataset) -> BatchReport:
        """Aggregate ``dataset`` and dispatch every group."""
        return self.dispatch(aggregate(dataset), dataset.session)

    def dispatch(self, aggregation: Aggregation, session: SessionContext) -> BatchReport:
        report = BatchReport(
            kind=aggregation.kind.name,
            records=len(aggregation.entities),
            groups=aggregation.group_sizes(),
        )
        log = self._log.bind(kind=aggregation.kind.name)

        if not aggregation.entities:
            log.debug("batch_empty")
            return report

        for entity in aggregation.entities:
            if entity.action.is_noop():
                log.debug("bookkeeping_only", subject=str(entity.handle))
            else:
                log.debug("apply_action", subject=str(entity.handle), action=str(entity.action))

        self._apply_labels(log, report, session, aggregation.labels_to_add, remove=False)
        self._apply_labels(log, report, session, aggregation.labels_to_remove, remove=True)
        self._apply_categories(log, report, aggregation)
        self._apply_bindings(log, report, "move", aggregation.move, aggregation.kind.move_bindings)
        self._apply_bindings(log, report, "importance", aggregation.importance, _IMPORTANCE_BINDINGS)
        self._apply_bindings(log, report, "read", aggregation.read, aggregation.kind.read_bindings)
        self._mark_processed(log, report, session, aggregation.records)

        log.info("batch_applied", records=report.records, calls=report.calls)
        return report

    def _apply_labels(
        self,
        log: structlog.stdlib.BoundLogger,
        report: BatchReport,
        session: SessionContext,
        groups: Mapping[str, list[Handle]],
        *,
        remove: bool,
    ) -> None:
        step = "remove_label" if remove else "add_label"
        operation = self._mailbox.remove_label if remove else self._mailbox.add_label
        for name, records in groups.items():
            with _service_call(step, name, len(records)):
                operation(session.get_or_create_label(name), records)
            report.calls += 1
            log.info(
                "labels_removed" if remove else "labels_added",
                label=name,
                count=len(records),
            )
        if groups:
            log.info("labels_updated", step=step, labels=list(groups))

    def _apply_categories(
        self,
        log: structlog.stdlib.BoundLogger,
        report: BatchReport,
        aggregation: Aggregation,
    ) -> None:
        categorized = aggregation.categorized
        for entity in categorized:
            requested = entity.action.category_set
            add = [category for category in Category if category in requested]
            with _service_call("reassign_categories", entity.handle.id, 1):
                self._mailbox.reassign_categories(entity.handle, add, category_complement(requested))
            report.calls += 1
        if categorized:
            log.info("categories_reassigned", count=len(categorized))

    def _apply_bindings(
        self,
        log: structlog.stdlib.BoundLogger,
        report: BatchReport,
        dimension: str,
        groups: Mapping[Enum, list[Handle]],
        bindings: Mapping[Enum, Binding],
    ) -> None:
        """Dispatch every non-UNSET group of an enum dimension."""
        for value, records in groups.items():
            binding = bindings.get(value)
            if binding is None or not records:
                continue  # UNSET
            self._run(report, binding, value.value, records)
            log.info(
                f"{dimension}_applied",
                state=value.value,
                count=len(records),
            )

    def _run(
        self,
        report: BatchReport,
        binding: Binding,
        key: str,
        records: Sequence[Handle],
    ) -> None:
        operation = getattr(self._mailbox, binding.operation)

        if binding.scope is Scope.EACH:
            for record in records:
                with _service_call(binding.operation, f"{key}:{record.id}", 1):
                    operation(record)
                report.calls += 1
            return

        if binding.scope is Scope.THREADS:
            # Several messages of one thread collapse into a single target
            targets = list(dict.fromkeys(record.thread for record in records))
        else:
            targets = list(records)

        with _service_call(binding.operation, key, len(targets)):
            operation(targets)
        report.calls += 1

    def _mark_processed(
        self,
        log: structlog.stdlib.BoundLogger,
        report: BatchReport,
        session: SessionContext,
        records: list[Handle],
    ) -> None:
        if session.processed_label:
            with _service_call("mark_processed", session.processed_label, len(records)):
                label = session.get_or_create_label(session.processed_label)
                self._mailbox.add_label(label, records)
            report.calls += 1

        with _service_call("clear_unprocessed", session.unprocessed_label, len(records)):
            label = session.get_or_create_label(session.unprocessed_label)
            self._mailbox.remove_label(label, records)
        report.calls += 1
        log.info("marked_processed", count=len(records))


def apply_all_actions(dataset: EntityDataset, mailbox: MailboxService) -> BatchReport:
    """Apply every Action Record in ``dataset`` through ``mailbox``."""
    return Dispatcher(mailbox).apply(dataset)

"""Shared test fixtures for mailbatch."""

from unittest.mock import MagicMock

import pytest
import structlog

from mailbatch.core.config import MailbatchSettings
from mailbatch.engine.dataset import Handle, Message, Thread
from mailbatch.engine.session import Label, SessionContext


@pytest.fixture(autouse=True)
def _set_config_path(monkeypatch, tmp_path):
    """Point MailbatchSettings to an empty test config.yaml and clean env.

    Tests that need custom config values write YAML to their own tmp_path
    file and set MAILBATCH_CONFIG accordingly.
    """
    for var in [
        "MAILBATCH_JMAP_TOKEN",
        "MAILBATCH_JMAP_HOSTNAME",
        "MAILBATCH_LABELS",
        "MAILBATCH_CATEGORIES",
        "MAILBATCH_SESSION",
        "MAILBATCH_LOGGING",
    ]:
        monkeypatch.delenv(var, raising=False)
    config = tmp_path / "config.yaml"
    config.write_text("")  # empty = all defaults
    monkeypatch.setenv("MAILBATCH_CONFIG", str(config))


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Drop logging config that may point at a closed capture stream."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def mock_settings(monkeypatch):
    """Create MailbatchSettings with required env vars set."""
    monkeypatch.setenv("MAILBATCH_JMAP_TOKEN", "test-token")
    return MailbatchSettings()


@pytest.fixture
def mock_mailbox_ids():
    """Provide a dict of all required mailbox name -> ID mappings."""
    return {
        "Inbox": "mb-inbox",
        "Archive": "mb-archive",
        "Trash": "mb-trash",
        "Primary": "mb-primary",
        "Social": "mb-social",
        "Promotions": "mb-promotions",
        "Updates": "mb-updates",
        "Forums": "mb-forums",
    }


@pytest.fixture
def label_store():
    """LabelStore fake: every label exists with ID 'lb-<name>'."""
    store = MagicMock()
    store.find_label.side_effect = lambda name: f"lb-{name}"
    return store


@pytest.fixture
def session(label_store):
    return SessionContext(
        store=label_store,
        processed_label="@Processed",
        unprocessed_label="@Unprocessed",
    )


def make_thread(tid: str, *email_ids: str) -> Thread:
    return Thread(id=tid, subject=f"Subject {tid}", email_ids=email_ids or (f"{tid}-e1",))


def make_message(mid: str, thread: Thread | None = None) -> Message:
    thread = thread or make_thread(f"t-{mid}", mid)
    return Message(id=mid, thread=thread, subject=f"Subject {mid}")


class FakeMailbox:
    """In-memory MailboxService tracking label and flag state per email ID.

    ``calls`` records (operation, key, ids) in call order. Set ``fail_on``
    to an operation name to make that operation raise.
    """

    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[tuple[str, str, list[str]]] = []
        self.labels: dict[str, set[str]] = {}
        self.fail_on = fail_on

    @staticmethod
    def _ids(records) -> list[str]:
        ids: list[str] = []
        for record in records:
            ids.extend(record.email_ids if isinstance(record, Thread) else [record.id])
        return ids

    def _record(self, operation: str, key: str, records) -> list[str]:
        if operation == self.fail_on:
            raise RuntimeError(f"{operation} rejected")
        ids = self._ids(records)
        self.calls.append((operation, key, [r.id for r in records]))
        return ids

    def ops(self) -> list[str]:
        return [op for op, _, _ in self.calls]

    def add_label(self, label: Label, records) -> None:
        for eid in self._record("add_label", label.name, records):
            self.labels.setdefault(eid, set()).add(label.name)

    def remove_label(self, label: Label, records) -> None:
        for eid in self._record("remove_label", label.name, records):
            self.labels.setdefault(eid, set()).discard(label.name)

    def reassign_categories(self, record: Handle, add, remove) -> None:
        self._record("reassign_categories", ",".join(c.value for c in add), [record])
        self.last_categories = (list(add), list(remove))

    def __getattr__(self, operation: str):
        if not operation.startswith(("move_", "mark_")):
            raise AttributeError(operation)

        def _call(arg) -> None:
            records = arg if isinstance(arg, list) else [arg]
            self._record(operation, operation, records)

        return _call


@pytest.fixture
def mailbox():
    return FakeMailbox()

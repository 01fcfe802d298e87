"""Tests for the click CLI and the main() wiring."""

from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from mailbatch.cli import cli
from mailbatch.engine.dispatcher import BatchReport
from mailbatch.engine.errors import MalformedInputError, ServiceCallError

PLAN = (
    "kind: thread\n"
    "entries:\n"
    "  - id: T1\n"
    "    add_labels: [Receipts]\n"
    "    move: to_archive\n"
    "  - id: T2\n"
)


@pytest.fixture
def plan_file(tmp_path):
    path = tmp_path / "plan.yaml"
    path.write_text(PLAN)
    return path


@pytest.fixture
def jmap(monkeypatch, mock_mailbox_ids):
    """Patch JMAPClient in the entry point with a mock holding T1 and T2."""
    client = MagicMock()
    client.resolve_mailboxes.return_value = mock_mailbox_ids
    client.list_mailboxes.return_value = [
        {"id": "mb-receipts", "name": "Receipts", "parentId": None},
        {"id": "mb-unprocessed", "name": "@Unprocessed", "parentId": None},
    ]
    client.get_threads.return_value = {"T1": ["e1", "e2"], "T2": ["e3"]}
    client.get_emails.return_value = {
        "e1": {"id": "e1", "subject": "Invoice"},
        "e3": {"id": "e3", "subject": "Hi"},
    }
    monkeypatch.setattr("mailbatch.__main__.JMAPClient", lambda **kwargs: client)
    monkeypatch.setenv("MAILBATCH_JMAP_TOKEN", "tok")
    return client


class TestApplyCommand:
    def test_reports_success(self, monkeypatch, plan_file) -> None:
        main = MagicMock(return_value=BatchReport(kind="thread", records=2, calls=3))
        monkeypatch.setattr("mailbatch.__main__.main", main)

        result = CliRunner().invoke(cli, ["apply", str(plan_file)])

        assert result.exit_code == 0
        assert "Applied 3 calls to 2 thread(s)" in result.output
        main.assert_called_once_with(plan_file, dry_run=False)

    def test_batch_error_exits_1(self, monkeypatch, plan_file) -> None:
        error = ServiceCallError("move_to_archive", "to_archive", 1)
        error.__cause__ = RuntimeError("Failed to update emails: e1: gone")
        monkeypatch.setattr("mailbatch.__main__.main", MagicMock(side_effect=error))

        result = CliRunner().invoke(cli, ["apply", str(plan_file)])

        assert result.exit_code == 1
        assert "move_to_archive failed" in result.output
        assert "e1: gone" in result.output

    def test_missing_plan_file(self, tmp_path) -> None:
        result = CliRunner().invoke(cli, ["apply", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 2


class TestMain:
    def test_applies_plan_through_jmap(self, jmap, plan_file) -> None:
        from mailbatch.__main__ import main

        report = main(plan_file)

        # Receipts, to_archive, unprocessed removal (no processed label configured)
        assert report.calls == 3
        updates = [c.args[0] for c in jmap.update_emails.call_args_list]
        assert updates[0] == {
            "e1": {"mailboxIds/mb-receipts": True},
            "e2": {"mailboxIds/mb-receipts": True},
        }
        assert set(updates[1]) == {"e1", "e2"}
        assert updates[2] == {
            "e1": {"mailboxIds/mb-unprocessed": None},
            "e2": {"mailboxIds/mb-unprocessed": None},
            "e3": {"mailboxIds/mb-unprocessed": None},
        }
        jmap.connect.assert_called_once()

    def test_dry_run_sends_no_updates(self, jmap, plan_file, capsys) -> None:
        from mailbatch.__main__ import main

        report = main(plan_file, dry_run=True)

        assert report.calls == 3
        jmap.update_emails.assert_not_called()
        jmap.create_mailbox.assert_not_called()
        assert "Labels to add" in capsys.readouterr().out

    def test_bad_plan_fails_before_connecting(self, jmap, tmp_path) -> None:
        from mailbatch.__main__ import main

        path = tmp_path / "plan.yaml"
        path.write_text("kind: folder\n")

        with pytest.raises(MalformedInputError):
            main(path)
        jmap.connect.assert_not_called()

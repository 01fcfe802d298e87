"""Tests for the YAML-based configuration module."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from mailbatch.core.config import MailbatchSettings
from mailbatch.engine.actions import Category


def _settings(monkeypatch, tmp_path, yaml_text: str = "") -> MailbatchSettings:
    config = tmp_path / "config.yaml"
    config.write_text(yaml_text)
    monkeypatch.setenv("MAILBATCH_CONFIG", str(config))
    monkeypatch.setenv("MAILBATCH_JMAP_TOKEN", "tok")
    return MailbatchSettings()


class TestYAMLConfigDefaults:
    """MailbatchSettings loads defaults when config.yaml has no overrides."""

    def test_defaults_with_empty_yaml(self, monkeypatch, tmp_path):
        settings = _settings(monkeypatch, tmp_path)

        assert settings.jmap_token == "tok"
        assert settings.jmap_hostname == "api.fastmail.com"
        assert settings.labels.processed == ""
        assert settings.labels.unprocessed == "@Unprocessed"
        assert settings.session.max_age_days is None
        assert settings.logging.level == "info"

    def test_default_category_mailboxes(self, monkeypatch, tmp_path):
        settings = _settings(monkeypatch, tmp_path)

        assert settings.category_mailboxes == {
            Category.PRIMARY: "Primary",
            Category.SOCIAL: "Social",
            Category.PROMOTIONS: "Promotions",
            Category.UPDATES: "Updates",
            Category.FORUMS: "Forums",
        }

    def test_required_mailboxes(self, monkeypatch, tmp_path):
        settings = _settings(monkeypatch, tmp_path)

        assert settings.required_mailboxes == [
            "Inbox", "Archive", "Trash",
            "Primary", "Social", "Promotions", "Updates", "Forums",
        ]

    def test_no_cutoff_by_default(self, monkeypatch, tmp_path):
        assert _settings(monkeypatch, tmp_path).cutoff() is None


class TestYAMLConfigOverrides:
    def test_labels_override(self, monkeypatch, tmp_path):
        settings = _settings(
            monkeypatch, tmp_path,
            "labels:\n  processed: '@Done'\n  unprocessed: '@Todo'\n",
        )

        assert settings.labels.processed == "@Done"
        assert settings.labels.unprocessed == "@Todo"

    def test_blank_processed_means_disabled(self, monkeypatch, tmp_path):
        settings = _settings(monkeypatch, tmp_path, "labels:\n  processed: '   '\n")
        assert settings.labels.processed == ""

    def test_blank_unprocessed_rejected(self, monkeypatch, tmp_path):
        with pytest.raises(ValidationError, match="Unprocessed label must not be empty"):
            _settings(monkeypatch, tmp_path, "labels:\n  unprocessed: ''\n")

    def test_partial_category_override_keeps_defaults(self, monkeypatch, tmp_path):
        settings = _settings(
            monkeypatch, tmp_path,
            "categories:\n  social: Category/Social\n  FORUMS: Lists\n",
        )

        assert settings.category_mailboxes[Category.SOCIAL] == "Category/Social"
        assert settings.category_mailboxes[Category.FORUMS] == "Lists"
        assert settings.category_mailboxes[Category.PRIMARY] == "Primary"

    def test_shared_category_mailbox_rejected(self, monkeypatch, tmp_path):
        with pytest.raises(ValidationError, match="shared by categories") as exc_info:
            _settings(
                monkeypatch, tmp_path,
                "categories:\n  social: Feed\n  forums: Feed\n  updates: ''\n",
            )

        # All errors reported at once
        assert "empty mailbox name" in str(exc_info.value)

    def test_unknown_category_rejected(self, monkeypatch, tmp_path):
        with pytest.raises(ValidationError):
            _settings(monkeypatch, tmp_path, "categories:\n  spam: Junk\n")

    def test_cutoff_from_max_age(self, monkeypatch, tmp_path):
        settings = _settings(monkeypatch, tmp_path, "session:\n  max_age_days: 7\n")
        now = datetime(2026, 3, 8, tzinfo=timezone.utc)

        assert settings.cutoff(now) == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_max_age_must_be_positive(self, monkeypatch, tmp_path):
        with pytest.raises(ValidationError):
            _settings(monkeypatch, tmp_path, "session:\n  max_age_days: 0\n")

    def test_env_token_wins(self, monkeypatch, tmp_path):
        settings = _settings(monkeypatch, tmp_path, "jmap_token: from-yaml\n")
        assert settings.jmap_token == "tok"


class TestMissingConfig:
    def test_missing_token_raises(self, monkeypatch):
        with pytest.raises(ValidationError, match="jmap_token"):
            MailbatchSettings()

    def test_missing_config_exits(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("MAILBATCH_CONFIG", str(tmp_path / "nonexistent.yaml"))
        monkeypatch.setenv("MAILBATCH_JMAP_TOKEN", "tok")

        with pytest.raises(SystemExit) as exc_info:
            MailbatchSettings()

        assert exc_info.value.code == 1
        assert "config.yaml.example" in capsys.readouterr().err

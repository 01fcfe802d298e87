"""mailbatch configuration loaded from config.yaml + auth env vars."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict, YamlConfigSettingsSource

from mailbatch.engine.actions import Category


# ---------------------------------------------------------------------------
# Nested sub-models for YAML config
# ---------------------------------------------------------------------------


def _default_category_mailboxes() -> dict[Category, str]:
    """Return one mailbox per category, named after the category."""
    return {category: category.value.capitalize() for category in Category}


class LabelSettings(BaseModel):
    """Bookkeeping labels applied after every batch."""

    processed: str = ""
    unprocessed: str = "@Unprocessed"

    @field_validator("processed")
    @classmethod
    def strip_processed(cls, v: str) -> str:
        """Whitespace-only means no processed marker."""
        return v.strip()

    @field_validator("unprocessed")
    @classmethod
    def unprocessed_must_not_be_empty(cls, v: str) -> str:
        """Strip whitespace and reject empty names."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Unprocessed label must not be empty")
        return stripped


class SessionSettings(BaseModel):
    """Per-run dataset settings."""

    max_age_days: int | None = Field(default=None, ge=1)


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = "info"


def _validate_category_mailboxes(mapping: dict[Category, str]) -> list[str]:
    """Validate the category -> mailbox mapping and return all errors found.

    Checks performed (all errors collected, not fail-fast):
      - Every category has a mailbox
      - No blank mailbox names
      - No mailbox shared by two categories
    """
    errors: list[str] = []

    for category in Category:
        if category not in mapping:
            errors.append(f"Category '{category.value}' has no mailbox")

    owners: dict[str, Category] = {}
    for category, mailbox in mapping.items():
        if not mailbox.strip():
            errors.append(f"Category '{category.value}' has an empty mailbox name")
            continue
        if mailbox in owners:
            errors.append(
                f"Mailbox '{mailbox}' is shared by categories "
                f"'{owners[mailbox].value}' and '{category.value}'"
            )
        else:
            owners[mailbox] = category

    return errors


# ---------------------------------------------------------------------------
# Main settings class
# ---------------------------------------------------------------------------


def _resolve_config_path() -> str:
    """Resolve config.yaml path: MAILBATCH_CONFIG env var or cwd default.

    Raises SystemExit with a helpful message if the config file is missing.
    """
    config_path = os.environ.get("MAILBATCH_CONFIG", "config.yaml")
    path = Path(config_path)
    if not path.exists():
        print(
            f"Error: Config file not found: {path.resolve()}\n"
            f"Copy config.yaml.example to config.yaml and edit it:\n"
            f"  cp config.yaml.example config.yaml",
            file=sys.stderr,
        )
        raise SystemExit(1)
    return str(path)


class MailbatchSettings(BaseSettings):
    """Application settings loaded from config.yaml + auth env vars.

    Non-secret configuration lives in config.yaml (labels, categories,
    session, logging). The JMAP token comes from MAILBATCH_JMAP_TOKEN.
    """

    model_config = SettingsConfigDict(
        env_prefix="MAILBATCH_",
        case_sensitive=False,
    )

    jmap_token: str
    jmap_hostname: str = "api.fastmail.com"

    labels: LabelSettings = LabelSettings()
    categories: dict[Category, str] = Field(default_factory=_default_category_mailboxes)
    session: SessionSettings = SessionSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Configure source priority: init > env vars > YAML config file."""
        config_path = _resolve_config_path()
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=config_path),
        )

    @field_validator("categories", mode="before")
    @classmethod
    def merge_category_defaults(cls, v: dict | None) -> dict:
        """Let config.yaml override only some categories."""
        merged: dict = {c.value: name for c, name in _default_category_mailboxes().items()}
        for key, name in (v or {}).items():
            merged[key.value if isinstance(key, Category) else str(key).lower()] = name
        return merged

    @model_validator(mode="after")
    def validate_categories(self) -> MailbatchSettings:
        """Reject blank or shared category mailboxes, listing every problem."""
        errors = _validate_category_mailboxes(self.categories)
        if errors:
            raise ValueError(
                "Invalid category configuration:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )
        return self

    @property
    def category_mailboxes(self) -> dict[Category, str]:
        """Return the category -> mailbox name mapping in enumeration order."""
        return {category: self.categories[category] for category in Category}

    @property
    def required_mailboxes(self) -> list[str]:
        """Return all mailbox names that must exist at startup."""
        return ["Inbox", "Archive", "Trash", *self.category_mailboxes.values()]

    def cutoff(self, now: datetime | None = None) -> datetime | None:
        """Return the oldest receive time to consider, or None for no limit."""
        if self.session.max_age_days is None:
            return None
        now = now or datetime.now(timezone.utc)
        return now - timedelta(days=self.session.max_age_days)

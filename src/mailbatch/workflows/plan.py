"""Action plans: YAML files of per-record intents, loaded into an Entity Dataset.

A plan is written by the rule stage:

    kind: message
    entries:
      - id: M1
        add_labels: [Receipts]
        categories: [updates]
        move: to_archive
        read: record_read

``build_dataset`` resolves each id to a thread or message handle over JMAP.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from mailbatch.clients.jmap import JMAPClient
from mailbatch.core.logging import get_logger
from mailbatch.engine.actions import ActionRecord, Category, Importance, MoveState, ReadState
from mailbatch.engine.dataset import EntityDataset, Handle, Message, Thread
from mailbatch.engine.errors import MalformedInputError
from mailbatch.engine.kinds import KINDS, THREAD
from mailbatch.engine.session import SessionContext


class PlanEntry(BaseModel):
    """Intended mutations for one thread or message ID."""

    model_config = ConfigDict(extra="forbid")

    id: str
    add_labels: list[str] = []
    remove_labels: list[str] = []
    categories: list[Category] = []
    move: MoveState = MoveState.UNSET
    importance: Importance = Importance.UNSET
    read: ReadState = ReadState.UNSET

    @field_validator("id")
    @classmethod
    def id_must_not_be_empty(cls, v: str) -> str:
        """Strip whitespace and reject empty IDs."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Entry id must not be empty")
        return stripped

    def to_action(self) -> ActionRecord:
        return ActionRecord(
            labels_to_add=set(self.add_labels),
            labels_to_remove=set(self.remove_labels),
            category_set=set(self.categories),
            move_state=self.move,
            importance=self.importance,
            read_state=self.read,
        )


class ActionPlan(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["thread", "message"]
    entries: list[PlanEntry] = []


def load_plan(path: Path) -> ActionPlan:
    """Parse and validate a YAML action plan.

    Raises:
        MalformedInputError: If the file is not valid YAML or not a valid plan.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise MalformedInputError(f"Action plan {path} is not valid YAML: {exc}") from exc

    try:
        return ActionPlan.model_validate(data)
    except ValidationError as exc:
        raise MalformedInputError(f"Invalid action plan {path}:\n{exc}") from exc


def _parse_received_at(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _load_threads(jmap: JMAPClient, thread_ids: list[str]) -> dict[str, Handle]:
    thread_emails = jmap.get_threads(thread_ids)
    missing = [tid for tid in thread_ids if tid not in thread_emails]
    if missing:
        raise MalformedInputError(f"Unknown thread ids: {', '.join(missing)}")

    first_ids = [email_ids[0] for email_ids in thread_emails.values() if email_ids]
    first = jmap.get_emails(first_ids, ["subject"]) if first_ids else {}

    handles: dict[str, Handle] = {}
    for tid, email_ids in thread_emails.items():
        subject = ""
        if email_ids:
            subject = first.get(email_ids[0], {}).get("subject") or ""
        handles[tid] = Thread(id=tid, subject=subject, email_ids=tuple(email_ids))
    return handles


def _load_messages(
    jmap: JMAPClient,
    email_ids: list[str],
    session: SessionContext,
) -> tuple[dict[str, Handle], set[str]]:
    """Resolve email IDs to Message handles.

    A planned message received before the session cutoff is stale unless it
    is the newest planned message of its thread, so every thread in the plan
    keeps the actions of at least one message. Stale messages still get a
    handle: they take part in bookkeeping, only their actions are dropped.

    Returns:
        Tuple of (handles by email ID, IDs whose actions are dropped as stale).
    """
    log = get_logger(component="plan")
    emails = jmap.get_emails(email_ids, ["threadId", "subject", "receivedAt"])
    missing = [eid for eid in email_ids if eid not in emails]
    if missing:
        raise MalformedInputError(f"Unknown email ids: {', '.join(missing)}")

    thread_ids = list(dict.fromkeys(email["threadId"] for email in emails.values()))
    thread_emails = jmap.get_threads(thread_ids)

    # JMAP UTCDates share one format, so the strings order like the instants
    newest: dict[str, str] = {}
    for eid in email_ids:
        tid = emails[eid]["threadId"]
        received = emails[eid].get("receivedAt") or ""
        if tid not in newest or received >= (emails[newest[tid]].get("receivedAt") or ""):
            newest[tid] = eid

    threads: dict[str, Thread] = {}
    handles: dict[str, Handle] = {}
    stale: set[str] = set()

    for eid in email_ids:
        email = emails[eid]
        tid = email["threadId"]
        subject = email.get("subject") or ""

        if (
            email.get("receivedAt")
            and newest[tid] != eid
            and session.is_stale(_parse_received_at(email["receivedAt"]))
        ):
            stale.add(eid)

        if tid not in threads:
            siblings = thread_emails.get(tid, [eid])
            threads[tid] = Thread(id=tid, subject=subject, email_ids=tuple(siblings))
        handles[eid] = Message(id=eid, thread=threads[tid], subject=subject)

    if stale:
        log.info("stale_actions_dropped", count=len(stale), cutoff=str(session.cutoff))
    return handles, stale


def build_dataset(plan: ActionPlan, jmap: JMAPClient, session: SessionContext) -> EntityDataset:
    """Resolve every plan entry to a handle and pair it with its Action Record.

    Stale messages enter the dataset with an empty Action Record, so the
    batch's bookkeeping still marks them processed.

    Raises:
        MalformedInputError: If an entry refers to an ID the server does not know.
    """
    kind = KINDS[plan.kind]
    dataset = EntityDataset(kind, session)
    if not plan.entries:
        return dataset

    ids = list(dict.fromkeys(entry.id for entry in plan.entries))
    stale: set[str] = set()
    if kind is THREAD:
        handles = _load_threads(jmap, ids)
    else:
        handles, stale = _load_messages(jmap, ids, session)

    for entry in plan.entries:
        action = ActionRecord() if entry.id in stale else entry.to_action()
        dataset.add(handles[entry.id], action)
    return dataset

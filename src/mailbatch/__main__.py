"""mailbatch entry point: apply one action plan to a Fastmail mailbox.

Startup crashes on bad config, bad credentials or missing mailboxes. The plan
is validated before anything is sent. A failure while dispatching aborts the
batch; the records of that batch keep their unprocessed label.
"""

from pathlib import Path

from mailbatch.clients.jmap import JMAPClient
from mailbatch.clients.mailbox import DryRunMailbox, JMAPMailbox
from mailbatch.core.config import MailbatchSettings
from mailbatch.core.logging import configure_logging, get_logger
from mailbatch.engine.aggregator import aggregate
from mailbatch.engine.dispatcher import BatchReport, Dispatcher
from mailbatch.engine.session import SessionContext
from mailbatch.reporting import print_plan
from mailbatch.workflows.plan import build_dataset, load_plan


def main(plan_path: Path, dry_run: bool = False) -> BatchReport:
    """Load settings and the plan, then dispatch (or just print) the batch."""
    # 1. Load config
    settings = MailbatchSettings()
    configure_logging(settings.logging.level)
    log = get_logger(component="main")

    # 2. Validate the plan before touching the network
    plan = load_plan(plan_path)

    # 3. Connect JMAP client and resolve mailboxes (crashes if any missing)
    jmap = JMAPClient(token=settings.jmap_token, hostname=settings.jmap_hostname)
    jmap.connect()
    mailbox_ids = jmap.resolve_mailboxes(settings.required_mailboxes)

    mailbox: JMAPMailbox | DryRunMailbox = JMAPMailbox(
        jmap, mailbox_ids, settings.category_mailboxes
    )
    if dry_run:
        mailbox = DryRunMailbox(labels=mailbox)

    # 4. Build the dataset
    session = SessionContext(
        store=mailbox,
        processed_label=settings.labels.processed,
        unprocessed_label=settings.labels.unprocessed,
        cutoff=settings.cutoff(),
    )
    dataset = build_dataset(plan, jmap, session)
    log.info("plan_loaded", plan=str(plan_path), kind=plan.kind, records=len(dataset))

    # 5. Dispatch
    aggregation = aggregate(dataset)
    if dry_run:
        print_plan(aggregation, session)
    report = Dispatcher(mailbox).dispatch(aggregation, session)

    log.info(
        "run_complete",
        dry_run=dry_run,
        records=report.records,
        calls=report.calls,
    )
    return report


if __name__ == "__main__":
    from mailbatch.cli import cli

    cli()

import json

import click
from dateutil.parser import parse as parse_datetime
from flask import current_app
from flask.cli import with_appcontext

from src.controllers.webhook_controller import Outcome


@click.command("unresolved-events")
@click.option("--all", "include_resolved", is_flag=True, help="Include events already resolved.")
@with_appcontext
def list_unresolved(include_resolved):
    """List webhook events parked because their account could not be resolved."""
    store = current_app.extensions["webhook_processor"].store
    entries = store.pending_unresolved(include_resolved=include_resolved)
    if not entries:
        click.echo("✅ No unresolved events.")
        return

    for entry in entries:
        state = "resolved" if entry.resolved_at else "pending"
        click.echo(
            f"{entry.event_id}  {entry.event_type}  customer={entry.customer_id or '-'}  "
            f"ref={entry.reference_id or '-'}  {state}  ({entry.reason})"
        )


@click.command("replay-unresolved")
@click.option("--event-id", default=None, help="Replay a single event.")
@click.option("--since", default=None, help="Only events parked at or after this date.")
@with_appcontext
def replay_unresolved(event_id, since):
    """Re-dispatch parked events, e.g. after the missing user has been linked."""
    processor = current_app.extensions["webhook_processor"]
    since_dt = parse_datetime(since) if since else None

    entries = processor.store.pending_unresolved(event_id=event_id, since=since_dt)
    if not entries:
        click.echo("✅ Nothing to replay.")
        return

    resolved = 0
    for entry in entries:
        event = json.loads(entry.payload)
        try:
            outcome = processor.dispatch(event)
        except Exception as e:
            click.echo(f"⚠️ Replay of {entry.event_id} failed: {e}")
            continue

        if outcome in (Outcome.UNRESOLVED, Outcome.FAILED):
            click.echo(f"⏳ {entry.event_id} still {outcome.value}")
            continue

        processor.store.mark_processed(entry.event_id, entry.event_type, outcome.value)
        processor.store.mark_resolved(entry)
        resolved += 1
        click.echo(f"✅ {entry.event_id} {outcome.value}")

    click.echo(f"Done: {resolved}/{len(entries)} events resolved")

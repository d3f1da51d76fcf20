from src.cli.commands import list_unresolved, replay_unresolved
from src.controllers.webhook_controller import Outcome
from src.models import db, ProcessedEvent, UnresolvedEvent, User
from tests.stripe_payloads import make_checkout_session, make_event, make_subscription


def park_subscription_event(processor, customer="cus_later"):
    event = make_event("customer.subscription.updated", make_subscription(customer=customer))
    assert processor.process(event) == Outcome.UNRESOLVED
    return event


def test_list_shows_pending_events(app, processor):
    event = park_subscription_event(processor)

    result = app.test_cli_runner().invoke(list_unresolved)

    assert result.exit_code == 0
    assert event["id"] in result.output
    assert "customer=cus_later" in result.output
    assert "pending" in result.output


def test_list_with_nothing_parked(app):
    result = app.test_cli_runner().invoke(list_unresolved)

    assert "No unresolved events" in result.output


def test_replay_applies_event_once_user_is_linked(app, processor, make_user):
    event = park_subscription_event(processor)
    make_user(id=5, stripe_customer_id="cus_later")

    result = app.test_cli_runner().invoke(replay_unresolved)

    assert result.exit_code == 0
    assert "1/1 events resolved" in result.output
    assert db.session.get(User, 5).premium_active is True
    assert UnresolvedEvent.query.one().resolved_at is not None
    assert ProcessedEvent.query.filter_by(event_id=event["id"]).one().outcome == "applied"


def test_replay_leaves_still_unresolved_events_pending(app, processor):
    park_subscription_event(processor)

    result = app.test_cli_runner().invoke(replay_unresolved)

    assert "still unresolved" in result.output
    assert "0/1 events resolved" in result.output
    assert UnresolvedEvent.query.count() == 1
    assert UnresolvedEvent.query.one().pending


def test_replay_single_event(app, processor, make_user):
    make_user(id=42)
    wanted = park_subscription_event(processor)
    checkout = make_event("checkout.session.completed", make_checkout_session(client_reference_id="42"))
    checkout["data"]["object"]["client_reference_id"] = "not-a-number"
    processor.process(checkout)

    result = app.test_cli_runner().invoke(replay_unresolved, ["--event-id", checkout["id"]])

    assert wanted["id"] not in result.output
    assert checkout["id"] in result.output


def test_replay_since_filters_by_date(app, processor):
    park_subscription_event(processor)

    result = app.test_cli_runner().invoke(replay_unresolved, ["--since", "2999-01-01"])

    assert "Nothing to replay" in result.output

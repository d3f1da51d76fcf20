# src/controllers/webhook_controller.py

from enum import Enum

from flask import current_app

from src.models.payment_model import PaymentStatus, PaymentType
from src.utils.stripe_utils import (
    dig,
    first_item_price,
    invoice_subscription_id,
    object_id,
    parse_reference_id,
    subscription_period_end,
    utc_from_timestamp,
)

# a paid invoice only turns premium back on while the subscription itself is live
ACTIVE_SUBSCRIPTION_STATUSES = {"active", "trialing"}


class Outcome(str, Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    UNRESOLVED = "unresolved"
    STALE = "stale"
    DUPLICATE = "duplicate"
    FAILED = "failed"


def classify_payment(stripe_object, status=PaymentStatus.SUCCEEDED):
    """Pull amount, currency and payment type out of a subscription or invoice.

    Returns None for any other object shape.
    """
    kind = dig(stripe_object, "object")

    if kind == "subscription":
        price = first_item_price(stripe_object) or {}
        amount = dig(price, "unit_amount")
        currency = dig(price, "currency")
        interval = dig(price, "recurring", "interval")
        payment_type = PaymentType.YEARLY if interval == "year" else PaymentType.MONTHLY

    elif kind == "invoice":
        if status == PaymentStatus.FAILED:
            amount = dig(stripe_object, "amount_due", default=0)
        else:
            amount = dig(stripe_object, "amount_paid", default=0)
        currency = dig(stripe_object, "currency")
        if dig(stripe_object, "billing_reason") == "subscription_create":
            interval = dig(first_item_price(stripe_object), "recurring", "interval")
            payment_type = PaymentType.YEARLY if interval == "year" else PaymentType.MONTHLY
        else:
            payment_type = PaymentType.RENEWAL

    else:
        return None

    payment_intent = object_id(dig(stripe_object, "payment_intent"))

    return {
        "stripe_payment_id": payment_intent or stripe_object["id"],
        "amount": amount,
        "currency": (currency or "").upper(),
        "payment_type": payment_type,
    }


class WebhookEventProcessor:
    """Applies verified Stripe events to user premium state and the payment log."""

    def __init__(self, billing, store):
        self.billing = billing
        self.store = store
        self.handlers = {
            "checkout.session.completed": self.handle_checkout_completed,
            "customer.subscription.created": self.handle_subscription_updated,
            "customer.subscription.updated": self.handle_subscription_updated,
            "customer.subscription.deleted": self.handle_subscription_deleted,
            "invoice.payment_succeeded": self.handle_payment_succeeded,
            "invoice.payment_failed": self.handle_payment_failed,
        }

    def process(self, event) -> Outcome:
        event_id, event_type = event["id"], event["type"]
        current_app.logger.info(f"📨 Event type: {event_type} ({event_id})")

        if self.store.is_processed(event_id):
            current_app.logger.info(f"♻️ Event {event_id} already processed, skipping")
            return Outcome.DUPLICATE

        outcome = self.dispatch(event)

        # storage failures stay out of the ledger so a manual redelivery can apply them
        if outcome != Outcome.FAILED:
            self.store.mark_processed(event_id, event_type, outcome.value)
        return outcome

    def dispatch(self, event) -> Outcome:
        handler = self.handlers.get(event["type"])
        if handler is None:
            current_app.logger.info(f"🤷 Unhandled event type: {event['type']}")
            return Outcome.IGNORED

        return handler(event)

    # ─── handlers ───

    def handle_checkout_completed(self, event) -> Outcome:
        session = event["data"]["object"]
        current_app.logger.info(f"💳 Checkout completed for session: {session['id']}")

        raw_reference = dig(session, "client_reference_id")
        customer_id = object_id(dig(session, "customer"))
        user_id = parse_reference_id(raw_reference)

        if not user_id:
            current_app.logger.error(f"❌ No usable user id in session (got {raw_reference!r})")
            return self._unresolved(event, "missing or invalid client_reference_id",
                                    customer_id=customer_id, reference_id=raw_reference)
        if not customer_id:
            current_app.logger.error(f"❌ Session {session['id']} has no customer")
            return self._unresolved(event, "checkout session without customer", reference_id=user_id)

        user = self.store.get_user(user_id)
        if not user:
            current_app.logger.error(f"❌ User not found: {user_id}")
            return self._unresolved(event, "no user for client_reference_id",
                                    customer_id=customer_id, reference_id=user_id)

        if not self.store.update_user(user, stripe_customer_id=customer_id):
            return Outcome.FAILED

        current_app.logger.info(f"✅ Updated customer ID for user {user.id}")
        return Outcome.APPLIED

    def handle_subscription_updated(self, event) -> Outcome:
        subscription = event["data"]["object"]
        current_app.logger.info(f"📅 Subscription updated: {subscription['id']}")

        user = self._resolve_customer(event, subscription)
        if user is None:
            return Outcome.UNRESOLVED
        if self._is_stale(event, user):
            return Outcome.STALE

        expires_at = utc_from_timestamp(subscription_period_end(subscription))
        if expires_at is None:
            raise ValueError(f"Subscription {subscription['id']} has no current_period_end")

        if not self.store.update_user(
            user,
            premium_active=True,
            premium_expires_at=expires_at,
            stripe_subscription_id=subscription["id"],
            billing_event_at=self._event_time(event) or user.billing_event_at,
        ):
            return Outcome.FAILED

        current_app.logger.info(f"✅ Premium activated for user {user.id} until {expires_at.isoformat()}")

        if self.record_payment(user.id, subscription, event=event) is None:
            return Outcome.FAILED
        return Outcome.APPLIED

    def handle_subscription_deleted(self, event) -> Outcome:
        subscription = event["data"]["object"]
        current_app.logger.info(f"🗑️ Subscription deleted: {subscription['id']}")

        user = self._resolve_customer(event, subscription)
        if user is None:
            return Outcome.UNRESOLVED
        if self._is_stale(event, user):
            return Outcome.STALE

        # premium_expires_at stays as a historical marker; premium_active is authoritative
        if not self.store.update_user(
            user,
            premium_active=False,
            stripe_subscription_id=None,
            billing_event_at=self._event_time(event) or user.billing_event_at,
        ):
            return Outcome.FAILED

        current_app.logger.info(f"✅ Premium deactivated for user {user.id}")
        return Outcome.APPLIED

    def handle_payment_succeeded(self, event) -> Outcome:
        invoice = event["data"]["object"]
        current_app.logger.info(f"💰 Payment succeeded for invoice: {invoice['id']}")

        user = self._resolve_customer(event, invoice)
        if user is None:
            return Outcome.UNRESOLVED

        subscription_id = invoice_subscription_id(invoice)
        if subscription_id:
            subscription = self.billing.retrieve_subscription(subscription_id)
            status = dig(subscription, "status")
            if status and status not in ACTIVE_SUBSCRIPTION_STATUSES:
                current_app.logger.warning(
                    f"⚠️ Subscription {subscription_id} is {status}, not reactivating premium for user {user.id}"
                )
            else:
                expires_at = utc_from_timestamp(subscription_period_end(subscription))
                if expires_at is None:
                    raise ValueError(f"Subscription {subscription_id} has no current_period_end")

                if not self.store.update_user(user, premium_active=True, premium_expires_at=expires_at):
                    return Outcome.FAILED
                current_app.logger.info(
                    f"✅ Premium extended for user {user.id} until {expires_at.isoformat()}"
                )

        if self.record_payment(user.id, invoice, PaymentStatus.SUCCEEDED, event=event) is None:
            return Outcome.FAILED
        return Outcome.APPLIED

    def handle_payment_failed(self, event) -> Outcome:
        invoice = event["data"]["object"]
        current_app.logger.info(f"❌ Payment failed for invoice: {invoice['id']}")

        user = self._resolve_customer(event, invoice)
        if user is None:
            return Outcome.UNRESOLVED

        if self.record_payment(user.id, invoice, PaymentStatus.FAILED, event=event) is None:
            return Outcome.FAILED

        current_app.logger.warning(f"⚠️ Payment failed for user {user.id} - consider grace period")
        return Outcome.APPLIED

    # ─── payment recorder ───

    def record_payment(self, user_id, stripe_object, status=PaymentStatus.SUCCEEDED, event=None):
        """Write one audit row for a subscription or invoice. Returns the row, or None on failure."""
        details = classify_payment(stripe_object, status)
        if details is None:
            current_app.logger.warning(
                f"⚠️ Cannot record payment from {dig(stripe_object, 'object')!r} object {dig(stripe_object, 'id')}"
            )
            return None

        payment = self.store.add_payment(
            user_id=user_id,
            status=status,
            stripe_event_id=event["id"] if event is not None else None,
            **details,
        )
        if payment is not None:
            current_app.logger.info(f"✅ Payment record created for user {user_id}")
        return payment

    # ─── helpers ───

    def _resolve_customer(self, event, stripe_object):
        # customer may arrive expanded
        customer_id = object_id(dig(stripe_object, "customer"))

        user = self.store.find_user_by_customer(customer_id, lock=True)
        if user is None:
            current_app.logger.error(f"❌ User not found for customer: {customer_id}")
            self._unresolved(event, "no user for customer", customer_id=customer_id)
        return user

    def _unresolved(self, event, reason, customer_id=None, reference_id=None) -> Outcome:
        self.store.dead_letter(event, reason, customer_id=customer_id, reference_id=reference_id)
        return Outcome.UNRESOLVED

    @staticmethod
    def _event_time(event):
        return utc_from_timestamp(dig(event, "created"))

    def _is_stale(self, event, user) -> bool:
        event_time = self._event_time(event)
        if event_time is None or user.billing_event_at is None:
            return False
        if event_time < user.billing_event_at:
            current_app.logger.warning(
                f"⏪ Ignoring stale {event['type']} for user {user.id}: "
                f"event at {event_time.isoformat()}, last applied {user.billing_event_at.isoformat()}"
            )
            return True
        return False

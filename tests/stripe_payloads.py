"""Builders for Stripe-shaped webhook payloads used across the test suite."""
import time
import uuid

# 2027-01-15T08:00:00Z
PERIOD_END = 1_800_000_000


def make_event(event_type, obj, event_id=None, created=None):
    return {
        "id": event_id or f"evt_{uuid.uuid4().hex[:16]}",
        "object": "event",
        "type": event_type,
        "created": created if created is not None else int(time.time()),
        "livemode": False,
        "data": {"object": obj},
    }


def make_subscription(sub_id="sub_123", customer="cus_123", interval="month",
                      unit_amount=499, currency="eur", period_end=PERIOD_END,
                      status="active"):
    return {
        "id": sub_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "current_period_end": period_end,
        "items": {
            "object": "list",
            "data": [
                {
                    "id": "si_123",
                    "object": "subscription_item",
                    "price": {
                        "id": "price_123",
                        "object": "price",
                        "unit_amount": unit_amount,
                        "currency": currency,
                        "recurring": {"interval": interval},
                    },
                }
            ],
        },
    }


def make_invoice(invoice_id="in_123", customer="cus_123", subscription="sub_123",
                 billing_reason="subscription_cycle", amount_paid=499, amount_due=499,
                 currency="eur", payment_intent="pi_123"):
    return {
        "id": invoice_id,
        "object": "invoice",
        "customer": customer,
        "subscription": subscription,
        "billing_reason": billing_reason,
        "amount_paid": amount_paid,
        "amount_due": amount_due,
        "currency": currency,
        "payment_intent": payment_intent,
    }


def make_checkout_session(session_id="cs_123", client_reference_id="42", customer="cus_123"):
    return {
        "id": session_id,
        "object": "checkout.session",
        "client_reference_id": client_reference_id,
        "customer": customer,
        "mode": "subscription",
    }

# src/utils/stripe_utils.py
import json
from datetime import datetime, timezone


def utc_from_timestamp(ts):
    """Unix seconds -> naive UTC datetime, the way timestamps are stored."""
    if ts is None:
        return None
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).replace(tzinfo=None)


def dig(obj, *path, default=None):
    """Walk nested Stripe objects / dicts; list indexes are allowed in the path."""
    current = obj
    for key in path:
        if current is None:
            return default
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError, AttributeError):
            return default
    return default if current is None else current


def first_item_price(obj):
    # subscriptions carry `items`, invoices carry `lines`
    return dig(obj, "items", "data", 0, "price") or dig(obj, "lines", "data", 0, "price")


def subscription_period_end(subscription):
    # Newer API versions moved current_period_end onto the subscription items.
    return dig(subscription, "current_period_end") or dig(
        subscription, "items", "data", 0, "current_period_end"
    )


def invoice_subscription_id(invoice):
    sub = dig(invoice, "subscription") or dig(
        invoice, "parent", "subscription_details", "subscription"
    )
    return object_id(sub)


def parse_reference_id(value):
    """client_reference_id -> positive int user id, or None when unusable."""
    if value is None:
        return None
    try:
        user_id = int(str(value).strip())
    except ValueError:
        return None
    return user_id if user_id > 0 else None


def object_id(value):
    """Id of a reference that may arrive as a bare id or as an expanded object."""
    if value is None or isinstance(value, str):
        return value
    return dig(value, "id")


def _stripe_default(obj):
    # StripeObject is not a dict subclass in current stripe releases
    to_dict = getattr(obj, "to_dict", None)
    if to_dict is None:
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
    return to_dict()


def to_json(obj) -> str:
    """Serialize a Stripe object (or a replayed plain dict) to JSON."""
    return json.dumps(obj, default=_stripe_default)

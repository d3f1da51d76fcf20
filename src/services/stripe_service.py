import stripe
from flask import current_app


class BillingServiceError(Exception):
    """Raised when Stripe is misconfigured or a Stripe API call fails."""
    pass


class WebhookVerificationError(Exception):
    """Raised when an inbound webhook cannot be authenticated."""
    pass


class StripeBillingService:
    SIGNATURE_HEADER = "Stripe-Signature"

    def __init__(self, api_key=None, webhook_secret=None, tolerance=300):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance

    @classmethod
    def from_config(cls, cfg):
        return cls(
            api_key=cfg.get("STRIPE_SECRET_KEY"),
            webhook_secret=cfg.get("STRIPE_WEBHOOK_SECRET"),
            tolerance=cfg.get("STRIPE_SIGNATURE_TOLERANCE", 300),
        )

    def construct_event(self, payload: bytes, sig_header):
        """Verify the signature over the raw body and return the typed event."""
        if not self.webhook_secret:
            current_app.logger.error("❌ STRIPE_WEBHOOK_SECRET is not configured")
            raise BillingServiceError("Webhook secret not configured")
        if not sig_header:
            raise WebhookVerificationError(f"Missing {self.SIGNATURE_HEADER} header")

        try:
            event = stripe.Webhook.construct_event(
                payload, sig_header, self.webhook_secret, tolerance=self.tolerance
            )
        except ValueError as e:
            raise WebhookVerificationError(f"Invalid payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(str(e)) from e

        current_app.logger.debug("✅ Webhook signature verified for %s", event["id"])
        return event

    def retrieve_subscription(self, subscription_id: str):
        if not self.api_key:
            raise BillingServiceError("Stripe API key not configured")

        current_app.logger.debug("🔎 Fetching subscription %s", subscription_id)
        try:
            return stripe.Subscription.retrieve(subscription_id, api_key=self.api_key)
        except stripe.StripeError as e:
            current_app.logger.error("❌ Subscription fetch failed for %s: %s", subscription_id, e)
            raise BillingServiceError(f"Could not retrieve subscription {subscription_id}") from e

# src/routes/webhook.py

from flask import Blueprint, request, current_app, jsonify
from src.services.stripe_service import WebhookVerificationError

webhook_bp = Blueprint("webhook", __name__)

# HEAD is answered by Flask through GET
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def get_processor():
    return current_app.extensions["webhook_processor"]


@webhook_bp.route("", methods=ALL_METHODS, provide_automatic_options=False)
def handle_stripe_webhook():
    """Receive a Stripe event, verify it, and apply it to the user database"""
    current_app.logger.info(f"🔔 Webhook received: {request.method}")

    if request.method != "POST":
        return jsonify({"error": "Method not allowed"}), 405

    processor = get_processor()
    payload = request.get_data()
    sig_header = request.headers.get(processor.billing.SIGNATURE_HEADER)

    try:
        event = processor.billing.construct_event(payload, sig_header)
    except WebhookVerificationError as e:
        current_app.logger.error(f"❌ Webhook signature verification failed: {e}")
        return jsonify({"error": f"Webhook Error: {e}"}), 400
    except Exception:
        current_app.logger.exception("❌ Webhook verification could not run")
        return jsonify({"error": "Internal server error"}), 500

    try:
        outcome = processor.process(event)
    except Exception:
        current_app.logger.exception("❌ Error processing webhook")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.debug(f"🏁 Event {event['id']} finished with outcome {outcome.value}")
    return jsonify({"received": True, "type": event["type"]}), 200

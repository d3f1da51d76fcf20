from datetime import datetime
from flask import Blueprint, current_app

main_bp = Blueprint("main", __name__)


@main_bp.route("/health")
def health():
    """Liveness check; also reports whether Stripe credentials are configured"""
    cfg = current_app.config
    return {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "webhook_path": cfg["WEBHOOK_PATH"],
        "webhook_secret_configured": bool(cfg.get("STRIPE_WEBHOOK_SECRET")),
        "api_key_configured": bool(cfg.get("STRIPE_SECRET_KEY")),
    }, 200

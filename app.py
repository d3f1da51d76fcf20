import os
from flask import Flask
from dotenv import load_dotenv
from src.models import db
from src.config import get_config
from src.routes.webhook import webhook_bp
from src.routes.main import main_bp
from src.cli.commands import list_unresolved, replay_unresolved
from src.controllers.webhook_controller import WebhookEventProcessor
from src.services.account_store import AccountStore
from src.services.stripe_service import StripeBillingService

# Load environment variables early
load_dotenv()


def register_blueprints(app):
    """Attach all route blueprints."""
    app.register_blueprint(webhook_bp, url_prefix=app.config["WEBHOOK_PATH"])
    app.register_blueprint(main_bp)
    app.cli.add_command(list_unresolved)
    app.cli.add_command(replay_unresolved)


def create_app(config_class=None, billing_service=None):
    app = Flask(__name__)
    app.config.from_object(config_class or get_config(os.getenv("FLASK_ENV")))
    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)

    # Clients are built once per process and handed to the processor
    billing = billing_service or StripeBillingService.from_config(app.config)
    app.extensions["webhook_processor"] = WebhookEventProcessor(billing=billing, store=AccountStore())

    with app.app_context():
        db.create_all()
        register_blueprints(app)

    app.logger.info(f"🚀 Webhook receiver ready at {app.config['WEBHOOK_PATH']}")
    return app


if __name__ == "__main__":
    create_app().run(host="localhost", port=5000, debug=True)

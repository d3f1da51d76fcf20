from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from src.models.user_model import User  # noqa: E402
from src.models.payment_model import Payment, PaymentStatus, PaymentType  # noqa: E402
from src.models.webhook_event_model import ProcessedEvent, UnresolvedEvent  # noqa: E402

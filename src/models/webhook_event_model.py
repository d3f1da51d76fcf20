# src/models/webhook_event_model.py

from datetime import datetime
from src.models import db


class ProcessedEvent(db.Model):
    """Ledger of Stripe events already dispatched, keyed by event id."""
    __tablename__ = "processed_events"

    id           = db.Column(db.Integer, primary_key=True)
    event_id     = db.Column(db.String(128), unique=True, nullable=False)
    event_type   = db.Column(db.String(100), nullable=False)
    outcome      = db.Column(db.String(20), nullable=False)
    processed_at = db.Column(db.DateTime, default=datetime.utcnow)


class UnresolvedEvent(db.Model):
    """Dead-letter row for an event whose account could not be resolved."""
    __tablename__ = "unresolved_events"

    id           = db.Column(db.Integer, primary_key=True)
    event_id     = db.Column(db.String(128), index=True, nullable=False)
    event_type   = db.Column(db.String(100), nullable=False)
    customer_id  = db.Column(db.String(64), index=True)
    reference_id = db.Column(db.String(64))
    reason       = db.Column(db.String(255), nullable=False)
    payload      = db.Column(db.Text, nullable=False)
    created_at   = db.Column(db.DateTime, default=datetime.utcnow)
    resolved_at  = db.Column(db.DateTime)

    @property
    def pending(self) -> bool:
        return self.resolved_at is None

    def __repr__(self):
        return f"<UnresolvedEvent {self.event_id} {self.event_type}>"

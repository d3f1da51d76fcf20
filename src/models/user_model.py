from datetime import datetime
from src.models import db


class User(db.Model):
    __tablename__ = "users"

    # Also the client_reference_id handed to Stripe Checkout.
    id                     = db.Column(db.Integer, primary_key=True)
    name                   = db.Column(db.String(120))
    stripe_customer_id     = db.Column(db.String(64), index=True, nullable=True)
    stripe_subscription_id = db.Column(db.String(64), nullable=True)
    premium_active         = db.Column(db.Boolean, nullable=False, default=False)
    premium_expires_at     = db.Column(db.DateTime, nullable=True)
    # provider timestamp of the newest subscription event applied
    billing_event_at       = db.Column(db.DateTime, nullable=True)
    created_at             = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at             = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    payments = db.relationship("Payment", back_populates="user")

    def __repr__(self):
        return f"<User {self.id} customer={self.stripe_customer_id}>"

    @property
    def premium_expired(self) -> bool:
        if not self.premium_expires_at:
            return True
        return datetime.utcnow() >= self.premium_expires_at

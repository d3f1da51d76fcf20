# src/models/payment_model.py

from datetime import datetime
from enum import Enum
from sqlalchemy import Enum as SqlEnum
from src.models import db


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class PaymentStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PaymentType(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    RENEWAL = "renewal"


class Payment(db.Model):
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("stripe_payment_id", "status", name="uq_payments_stripe_payment_status"),
    )

    id                = db.Column(db.Integer, primary_key=True)
    user_id           = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    stripe_payment_id = db.Column(db.String(128), nullable=False)  # payment intent, else invoice/subscription id
    stripe_event_id   = db.Column(db.String(128))
    amount            = db.Column(db.Integer)  # minor units
    currency          = db.Column(db.String(8))
    status            = db.Column(SqlEnum(PaymentStatus, values_callable=_enum_values), nullable=False)
    payment_type      = db.Column(SqlEnum(PaymentType, values_callable=_enum_values), nullable=False)
    created_at        = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", back_populates="payments")

    def __repr__(self):
        return f"<Payment {self.stripe_payment_id} {self.status.value}>"

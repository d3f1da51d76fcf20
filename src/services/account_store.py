# src/services/account_store.py
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError, MultipleResultsFound, SQLAlchemyError

from src.models import db
from src.models.user_model import User
from src.models.payment_model import Payment
from src.models.webhook_event_model import ProcessedEvent, UnresolvedEvent
from src.utils.stripe_utils import to_json


class AccountStore:
    """Thin persistence layer over the users/payments tables and the event ledgers.

    Writes commit immediately. A failed write is rolled back and logged and the
    caller gets a falsy result back; it never raises into the webhook response.
    """

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    # ─── users ───

    def get_user(self, user_id):
        return self.session.get(User, user_id)

    def find_user_by_customer(self, customer_id, lock=False):
        if not customer_id:
            return None
        query = self.session.query(User).filter_by(stripe_customer_id=customer_id)
        if lock:
            # row lock on PostgreSQL, ignored by SQLite
            query = query.with_for_update()
        try:
            return query.one_or_none()
        except MultipleResultsFound:
            current_app.logger.error(f"❌ Multiple users share customer {customer_id}")
            return None

    def update_user(self, user, **fields) -> bool:
        for key, value in fields.items():
            setattr(user, key, value)
        return self._commit(f"updating user {user.id}")

    # ─── payments ───

    def add_payment(self, **fields):
        """Insert a payment row unless one already exists for (stripe_payment_id, status).

        Returns the new Payment, the existing one for a redelivery, or None if
        the write failed.
        """
        existing = self.session.query(Payment).filter_by(
            stripe_payment_id=fields["stripe_payment_id"], status=fields["status"]
        ).first()
        if existing:
            current_app.logger.info(
                f"♻️ Payment {existing.stripe_payment_id} ({existing.status.value}) already recorded"
            )
            return existing

        payment = Payment(**fields)
        self.session.add(payment)
        try:
            self.session.commit()
        except IntegrityError:
            # lost a race with a concurrent delivery of the same event
            self.session.rollback()
            return self.session.query(Payment).filter_by(
                stripe_payment_id=fields["stripe_payment_id"], status=fields["status"]
            ).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"❌ Error creating payment record: {e}")
            return None
        return payment

    # ─── event ledgers ───

    def is_processed(self, event_id) -> bool:
        return self.session.query(ProcessedEvent).filter_by(event_id=event_id).first() is not None

    def mark_processed(self, event_id, event_type, outcome) -> bool:
        record = self.session.query(ProcessedEvent).filter_by(event_id=event_id).first()
        if record:
            record.outcome = outcome
            record.processed_at = datetime.utcnow()
        else:
            self.session.add(ProcessedEvent(event_id=event_id, event_type=event_type, outcome=outcome))
        return self._commit(f"recording event {event_id}")

    def dead_letter(self, event, reason, customer_id=None, reference_id=None):
        """Park an event for replay. An event already pending is not parked twice."""
        existing = (
            self.session.query(UnresolvedEvent)
            .filter(UnresolvedEvent.event_id == event["id"], UnresolvedEvent.resolved_at.is_(None))
            .first()
        )
        if existing:
            return existing

        entry = UnresolvedEvent(
            event_id=event["id"],
            event_type=event["type"],
            customer_id=customer_id,
            reference_id=None if reference_id is None else str(reference_id),
            reason=reason,
            payload=to_json(event),
        )
        self.session.add(entry)
        if not self._commit(f"dead-lettering event {event['id']}"):
            return None
        current_app.logger.warning(f"📮 Event {event['id']} parked as unresolved: {reason}")
        return entry

    def pending_unresolved(self, event_id=None, since=None, include_resolved=False):
        query = self.session.query(UnresolvedEvent)
        if not include_resolved:
            query = query.filter(UnresolvedEvent.resolved_at.is_(None))
        if event_id:
            query = query.filter_by(event_id=event_id)
        if since:
            query = query.filter(UnresolvedEvent.created_at >= since)
        return query.order_by(UnresolvedEvent.created_at, UnresolvedEvent.id).all()

    def mark_resolved(self, entry) -> bool:
        entry.resolved_at = datetime.utcnow()
        return self._commit(f"resolving dead-letter {entry.event_id}")

    def _commit(self, action) -> bool:
        try:
            self.session.commit()
            return True
        except SQLAlchemyError as e:
            self.session.rollback()
            current_app.logger.error(f"❌ Database error while {action}: {e}")
            return False

from __future__ import annotations

import logging

from ..exceptions import ValidationError
from ..models import Booking, Transaction, User, db
from ..models.store import atomic, get_or_raise, paginate
from ..utils.constants import TransactionType
from ..utils.dates import local_now, parse_optional_datetime
from .common import round2, to_float, to_int

logger = logging.getLogger(__name__)


def _type(value) -> TransactionType:
    try:
        return TransactionType(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown transaction type: {value}") from None


def _amount(value) -> float:
    amount = to_float(value, "amount")
    if amount <= 0:
        raise ValidationError("amount must be positive")
    return round2(amount)


class TransactionService:
    """Income/expense ledger. Payments linked to a booking raise its paid amount."""

    @staticmethod
    def create_transaction(
            user: User | None,
            type,
            amount,
            booking_id=None,
            category: str | None = None,
            description: str | None = None,
            payment_method: str | None = None,
            transaction_date=None,
    ) -> Transaction:
        tx_type = _type(type)
        amount = _amount(amount)
        with atomic() as session:
            booking = None
            if booking_id not in (None, ""):
                booking = get_or_raise(Booking, to_int(booking_id, "booking_id"), "Booking", for_update=True)
            tx = Transaction(
                booking=booking,
                user_id=user.id if user else None,
                type=tx_type,
                category=category,
                amount=amount,
                description=description,
                payment_method=payment_method,
                transaction_date=parse_optional_datetime(transaction_date, "transaction_date") or local_now(),
            )
            if booking is not None and tx_type == TransactionType.PAYMENT:
                booking.paid_amount = round2((booking.paid_amount or 0) + amount)
            session.add(tx)

        logger.info("transaction %s %s %.2f booking=%s", tx.id, tx_type.value, amount, booking_id)
        return tx

    @staticmethod
    def get_transaction(transaction_id) -> Transaction:
        return get_or_raise(Transaction, to_int(transaction_id, "transaction_id"), "Transaction")

    @staticmethod
    def list_transactions(type=None, category=None, start_date=None, end_date=None,
                          page: int = 1, limit: int = 20) -> dict:
        stmt = db.select(Transaction)
        if type:
            stmt = stmt.where(Transaction.type == _type(type))
        if category:
            stmt = stmt.where(Transaction.category == category)
        start = parse_optional_datetime(start_date, "start_date")
        end = parse_optional_datetime(end_date, "end_date")
        if start:
            stmt = stmt.where(Transaction.transaction_date >= start)
        if end:
            stmt = stmt.where(Transaction.transaction_date <= end)
        stmt = stmt.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
        return paginate(stmt, page, limit, "transactions")

    @staticmethod
    def update_transaction(transaction_id, fields: dict) -> Transaction:
        """Edit descriptive fields. Amount and type are fixed once recorded."""
        fields = dict(fields or {})
        locked = {"amount", "type", "booking_id"} & set(fields)
        if locked:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(locked))}")
        with atomic():
            tx = TransactionService.get_transaction(transaction_id)
            for name in ("category", "description", "payment_method"):
                if name in fields:
                    setattr(tx, name, fields[name])
            if fields.get("transaction_date"):
                tx.transaction_date = parse_optional_datetime(fields["transaction_date"], "transaction_date")
        return tx

    @staticmethod
    def delete_transaction(transaction_id) -> None:
        """Remove a ledger row; a deleted payment is taken back off its booking."""
        with atomic() as session:
            tx = TransactionService.get_transaction(transaction_id)
            if tx.booking is not None and tx.type == TransactionType.PAYMENT:
                tx.booking.paid_amount = round2(max((tx.booking.paid_amount or 0) - tx.amount, 0))
            session.delete(tx)
        logger.info("transaction %s deleted", transaction_id)

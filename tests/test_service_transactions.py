"""
Ledger entries and their effect on a booking's paid amount.
"""
import pytest

from backoffice.exceptions import NotFoundError, ValidationError
from backoffice.models import Booking, db
from backoffice.services.transaction_service import TransactionService
from backoffice.utils.constants import TransactionType


@pytest.fixture
def booking(bookings, make_car, make_customer, users):
    return bookings.create_booking(users["Reception"], make_car().id, make_customer().id, "2025-01-01", "2025-01-05")


def _paid(booking_id):
    return db.session.get(Booking, booking_id).paid_amount


def test_payment_adds_to_paid_amount(booking, users):
    TransactionService.create_transaction(users["Accountant"], "payment", 100, booking_id=booking.id)
    TransactionService.create_transaction(users["Accountant"], "payment", 50.5, booking_id=booking.id)
    assert _paid(booking.id) == 150.5


def test_other_types_leave_paid_amount(booking, users):
    tx = TransactionService.create_transaction(users["Accountant"], "expense", 30, booking_id=booking.id, category="fuel")
    assert tx.type == TransactionType.EXPENSE
    assert _paid(booking.id) == 0


def test_deleting_payment_reverses_it(booking, users):
    tx = TransactionService.create_transaction(users["Accountant"], "payment", 80, booking_id=booking.id)
    TransactionService.delete_transaction(tx.id)
    assert _paid(booking.id) == 0
    with pytest.raises(NotFoundError):
        TransactionService.get_transaction(tx.id)


@pytest.mark.parametrize("type_, amount", [("gift", 10), ("payment", 0), ("payment", -5), ("payment", "ten")])
def test_validation(users, type_, amount):
    with pytest.raises(ValidationError):
        TransactionService.create_transaction(users["Accountant"], type_, amount)


def test_unknown_booking(users):
    with pytest.raises(NotFoundError):
        TransactionService.create_transaction(users["Accountant"], "payment", 10, booking_id=999)


def test_update_keeps_amount_fixed(booking, users):
    tx = TransactionService.create_transaction(users["Accountant"], "payment", 10, booking_id=booking.id)
    tx = TransactionService.update_transaction(tx.id, {"description": "deposit", "payment_method": "card"})
    assert (tx.description, tx.payment_method) == ("deposit", "card")
    with pytest.raises(ValidationError):
        TransactionService.update_transaction(tx.id, {"amount": 99})


def test_list_filters(users):
    TransactionService.create_transaction(users["Accountant"], "income", 10, category="sales",
                                          transaction_date="2025-01-10")
    TransactionService.create_transaction(users["Accountant"], "expense", 20, category="fuel",
                                          transaction_date="2025-02-10")
    assert TransactionService.list_transactions(type="income")["pagination"]["total"] == 1
    assert TransactionService.list_transactions(category="fuel")["transactions"][0]["amount"] == 20
    assert TransactionService.list_transactions(start_date="2025-02-01")["pagination"]["total"] == 1

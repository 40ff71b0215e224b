import pytest

from customers import (
    create_customer,
    delete_customer,
    get_customer,
    get_customers,
    record_customer_payment,
    update_customer,
)
from errors import NotFoundError
from schemas import CustomerCreate, CustomerUpdate
from transactions import get_customer_transactions

ORG = "org-1"


def test_opening_balance_is_logged(db):
    customer_id = create_customer(db, ORG, CustomerCreate(name="Ravi", phone="9000000002", total_credit=250.0))

    customer = get_customer(db, ORG, customer_id)
    assert customer.total_credit == 250.0
    assert customer.total_visits == 0

    [entry] = get_customer_transactions(db, ORG, customer_id)
    assert entry.type == "OPENING_BALANCE"
    assert entry.balance_after == 250.0


def test_no_opening_balance_no_ledger(db):
    customer_id = create_customer(db, ORG, CustomerCreate(name="Ravi", phone="9000000002"))
    assert get_customer_transactions(db, ORG, customer_id) == []


def test_payment_reduces_credit(db):
    customer_id = create_customer(db, ORG, CustomerCreate(name="Ravi", phone="9000000002", total_credit=250.0))

    assert record_customer_payment(db, ORG, customer_id, 100.0) == 150.0
    assert get_customer(db, ORG, customer_id).total_credit == 150.0

    entries = get_customer_transactions(db, ORG, customer_id)
    payment = [e for e in entries if e.type == "PAYMENT"][0]
    assert payment.amount == 100.0
    assert payment.balance_after == 150.0


def test_payment_for_unknown_customer(db):
    with pytest.raises(NotFoundError):
        record_customer_payment(db, ORG, "65f000000000000000000000", 10.0)


def test_customer_crud(db):
    customer_id = create_customer(db, ORG, CustomerCreate(name="Zoya", phone="1"))
    create_customer(db, ORG, CustomerCreate(name="Anil", phone="2"))
    create_customer(db, "org-2", CustomerCreate(name="Bala", phone="3"))

    assert [c.name for c in get_customers(db, ORG)] == ["Anil", "Zoya"]

    update_customer(db, ORG, customer_id, CustomerUpdate(address="MG Road"))
    assert get_customer(db, ORG, customer_id).address == "MG Road"

    delete_customer(db, ORG, customer_id)
    assert get_customer(db, ORG, customer_id) is None
    with pytest.raises(NotFoundError):
        delete_customer(db, ORG, customer_id)

"""Customers and their credit balances."""

import logging
from typing import List, Optional

from pymongo import ASCENDING, ReturnDocument
from pymongo.database import Database

from database import create_document, decode_document, get_documents, oid, utcnow
from errors import NotFoundError
from schemas import Customer, CustomerCreate, CustomerUpdate
from transactions import add_transaction

logger = logging.getLogger(__name__)

COLLECTION = "customer"


def customer_from_doc(doc: dict) -> Customer:
    return Customer(**decode_document(doc, timestamp_fields=("last_visit", "created_at", "updated_at")))


def get_customers(db: Database, org_id: str) -> List[Customer]:
    docs = get_documents(db, COLLECTION, {"org_id": org_id}, sort=[("name", ASCENDING)])
    return [customer_from_doc(d) for d in docs]


def get_customer(db: Database, org_id: str, customer_id: str) -> Optional[Customer]:
    doc = db[COLLECTION].find_one({"_id": oid(customer_id), "org_id": org_id})
    if doc is None:
        return None
    return customer_from_doc(doc)


def create_customer(db: Database, org_id: str, customer: CustomerCreate) -> str:
    data = customer.model_dump()
    data.update(total_visits=0, total_spent=0.0, last_visit=utcnow())
    customer_id = create_document(db, COLLECTION, data, org_id=org_id)
    logger.info(f"Created customer {customer_id} for org {org_id}")

    if customer.total_credit != 0:
        add_transaction(db, org_id, customer_id, "OPENING_BALANCE",
                        customer.total_credit, customer.total_credit, "Opening Balance")
    return customer_id


def update_customer(db: Database, org_id: str, customer_id: str, updates: CustomerUpdate) -> None:
    fields = updates.model_dump(exclude_unset=True)
    fields["updated_at"] = utcnow()
    res = db[COLLECTION].update_one({"_id": oid(customer_id), "org_id": org_id}, {"$set": fields})
    if res.matched_count == 0:
        raise NotFoundError("Customer not found")


def delete_customer(db: Database, org_id: str, customer_id: str) -> None:
    res = db[COLLECTION].delete_one({"_id": oid(customer_id), "org_id": org_id})
    if res.deleted_count == 0:
        raise NotFoundError("Customer not found")


def record_customer_payment(db: Database, org_id: str, customer_id: str, amount: float) -> float:
    """Reduce the customer's outstanding credit and log the payment. Returns the new balance."""
    doc = db[COLLECTION].find_one_and_update(
        {"_id": oid(customer_id), "org_id": org_id},
        {"$inc": {"total_credit": -amount}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise NotFoundError("Customer not found")

    balance = doc["total_credit"]
    add_transaction(db, org_id, customer_id, "PAYMENT", amount, balance, "Payment Received")
    return balance

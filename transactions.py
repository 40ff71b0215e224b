"""Customer credit ledger."""

from typing import List, Optional

from pymongo import DESCENDING
from pymongo.database import Database

from database import create_document, decode_document, get_documents, utcnow
from schemas import CustomerTransaction, TransactionType

COLLECTION = "customertransaction"


def add_transaction(db: Database, org_id: str, customer_id: str, type: TransactionType, amount: float,
                    balance_after: float, description: str, reference_id: Optional[str] = None) -> str:
    return create_document(db, COLLECTION, {
        "customer_id": customer_id,
        "type": type,
        "amount": amount,
        "balance_after": balance_after,
        "description": description,
        "reference_id": reference_id,
        "date": utcnow(),
    }, org_id=org_id)


def get_customer_transactions(db: Database, org_id: str, customer_id: str) -> List[CustomerTransaction]:
    docs = get_documents(db, COLLECTION, {"org_id": org_id, "customer_id": customer_id},
                         sort=[("date", DESCENDING)])
    return [
        CustomerTransaction(**decode_document(d, timestamp_fields=("date", "created_at", "updated_at")))
        for d in docs
    ]

"""Stock movement audit trail."""

from typing import List, Optional, Union

from pymongo import DESCENDING
from pymongo.database import Database

from database import create_document, decode_document, get_documents
from schemas import StockMovement, StockMovementCreate

COLLECTION = "stockmovement"


def movement_from_doc(doc: dict) -> StockMovement:
    return StockMovement(**decode_document(doc, timestamp_fields=("created_at",)))


def create_stock_movement(db: Database, org_id: str, data: Union[StockMovementCreate, dict]) -> str:
    if isinstance(data, dict):
        data = StockMovementCreate(**data)
    return create_document(db, COLLECTION, data, org_id=org_id)


def get_stock_movements(db: Database, org_id: str, product_id: Optional[str] = None) -> List[StockMovement]:
    query = {"org_id": org_id}
    if product_id:
        query["product_id"] = product_id
    docs = get_documents(db, COLLECTION, query, sort=[("created_at", DESCENDING)])
    return [movement_from_doc(d) for d in docs]

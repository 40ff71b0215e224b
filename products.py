"""
Product catalog: CRUD, barcode lookup and stock adjustments.

Search by name/barcode prefix lives in ``search.py``.
"""

import logging
from typing import List, Optional

from pymongo import ASCENDING
from pymongo.database import Database

from database import create_document, decode_document, get_documents, oid, to_datetime, utcnow
from errors import InsufficientStockError, NotFoundError
from schemas import Product, ProductCreate, ProductUpdate, StockAdjustment, StockMovementCreate
from stock_movements import create_stock_movement

logger = logging.getLogger(__name__)

COLLECTION = "product"


def product_from_doc(doc: dict) -> Product:
    data = decode_document(doc)
    if data.get("last_sale_date") is not None:
        data["last_sale_date"] = to_datetime(data["last_sale_date"])
    return Product(**data)


def get_products(db: Database, org_id: str) -> List[Product]:
    docs = get_documents(db, COLLECTION, {"org_id": org_id}, sort=[("name", ASCENDING)])
    return [product_from_doc(d) for d in docs]


def get_product(db: Database, org_id: str, product_id: str) -> Optional[Product]:
    doc = db[COLLECTION].find_one({"_id": oid(product_id), "org_id": org_id})
    if doc is None:
        return None
    return product_from_doc(doc)


def find_product_by_barcode(db: Database, org_id: str, barcode: str) -> Optional[Product]:
    """Exact barcode match; the first one wins if several products share it."""
    doc = db[COLLECTION].find_one({"org_id": org_id, "barcode": barcode})
    if doc is None:
        return None
    return product_from_doc(doc)


def create_product(db: Database, org_id: str, product: ProductCreate) -> str:
    data = product.model_dump()
    data.update(
        total_purchased_qty=product.current_stock,
        total_sold_qty=0,
        total_revenue=0.0,
        total_cost=product.current_stock * product.cost_price,
        last_sale_date=None,
    )
    product_id = create_document(db, COLLECTION, data, org_id=org_id)
    logger.info(f"Created product {product_id} ({product.name}) for org {org_id}")

    if product.current_stock > 0:
        create_stock_movement(db, org_id, StockMovementCreate(
            product_id=product_id,
            product_name=product.name,
            type="IN",
            quantity=product.current_stock,
            unit_cost=product.cost_price,
            reason="Initial stock",
        ))

    return product_id


def update_product(db: Database, org_id: str, product_id: str, updates: ProductUpdate) -> None:
    fields = updates.model_dump(exclude_unset=True)
    fields["updated_at"] = utcnow()
    res = db[COLLECTION].update_one({"_id": oid(product_id), "org_id": org_id}, {"$set": fields})
    if res.matched_count == 0:
        raise NotFoundError("Product not found")


def delete_product(db: Database, org_id: str, product_id: str) -> None:
    res = db[COLLECTION].delete_one({"_id": oid(product_id), "org_id": org_id})
    if res.deleted_count == 0:
        raise NotFoundError("Product not found")


def adjust_stock(db: Database, org_id: str, product_id: str, adjustment: StockAdjustment) -> Product:
    """Apply an IN / OUT / ADJUSTMENT to a product and log the movement.

    Read-then-write, last write wins; concurrent adjustments of one product can
    overwrite each other.
    """
    product = get_product(db, org_id, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    new_stock = product.current_stock
    new_total_purchased = product.total_purchased_qty
    new_total_cost = product.total_cost

    if adjustment.type == "IN":
        new_stock += adjustment.quantity
        new_total_purchased += adjustment.quantity
        new_total_cost += adjustment.quantity * adjustment.unit_cost
    elif adjustment.type == "OUT":
        new_stock -= adjustment.quantity
        if new_stock < 0:
            raise InsufficientStockError(product.name, product.current_stock, adjustment.quantity)
    else:
        new_stock = adjustment.quantity

    db[COLLECTION].update_one(
        {"_id": oid(product_id), "org_id": org_id},
        {"$set": {
            "current_stock": new_stock,
            "total_purchased_qty": new_total_purchased,
            "total_cost": new_total_cost,
            "updated_at": utcnow(),
        }},
    )
    create_stock_movement(db, org_id, StockMovementCreate(
        product_id=product_id,
        product_name=product.name,
        type=adjustment.type,
        quantity=adjustment.quantity,
        unit_cost=adjustment.unit_cost,
        reason=adjustment.reason,
    ))
    logger.info(f"Stock {adjustment.type} {adjustment.quantity} on {product_id}: {product.current_stock} -> {new_stock}")

    return product.model_copy(update={
        "current_stock": new_stock,
        "total_purchased_qty": new_total_purchased,
        "total_cost": new_total_cost,
    })

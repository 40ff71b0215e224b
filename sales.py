"""
Recording and reading sales.

A sale touches several collections: the sale itself, product stock and
totals, stock movements, daily/monthly stats and, when a customer is attached,
the customer record and its ledger. There is no multi-document transaction.
Each product's stock is decremented with a conditional ``$inc`` so two
concurrent sales can never both take the last unit. Every write after that
registers an undo step; if a later write fails, the steps run in reverse and
the error is re-raised.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

import customers
import products
import stock_movements
from daily_stats import record_daily_sale, record_monthly_sale
from database import decode_document, get_documents, oid, utcnow
from errors import InsufficientStockError, NotFoundError
from schemas import Sale, SaleCreate, StockMovementCreate
from transactions import add_transaction

logger = logging.getLogger(__name__)

COLLECTION = "sale"
COUNTER_COLLECTION = "invoicecounter"


def sale_from_doc(doc: dict) -> Sale:
    return Sale(**decode_document(doc, timestamp_fields=("created_at",)))


def generate_invoice_number(db: Database, org_id: str, now: Optional[datetime] = None) -> str:
    """Issue the next invoice number for the day, formatted INV-YYYYMMDD-NNNN.

    Numbers come from an atomic per-tenant, per-day counter, so concurrent
    sales never share one. A number taken by a sale that later fails is not
    reused.
    """
    now = now or utcnow()
    day = now.strftime("%Y%m%d")
    counter = db[COUNTER_COLLECTION].find_one_and_update(
        {"_id": f"{org_id}_{day}"},
        {"$inc": {"seq": 1}, "$setOnInsert": {"org_id": org_id, "day": day}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return f"INV-{day}-{counter['seq']:04d}"


def _release_stock(db: Database, org_id: str, applied: list) -> None:
    for item in applied:
        logger.warning(f"Restoring {item.quantity} units of {item.product_id} after a failed sale")
        db[products.COLLECTION].update_one(
            {"_id": oid(item.product_id), "org_id": org_id},
            {"$inc": {
                "current_stock": item.quantity,
                "total_sold_qty": -item.quantity,
                "total_revenue": -item.line_total,
            }},
        )


def record_sale(db: Database, org_id: str, sale: SaleCreate, now: Optional[datetime] = None) -> str:
    """Record a sale with stock updates, stats tracking and customer ledger. Returns the sale id."""
    now = now or utcnow()
    sale = sale.model_copy(deep=True)

    # Validate everything before writing anything
    requested = defaultdict(int)
    for item in sale.items:
        requested[item.product_id] += item.quantity

    catalog = {}
    for product_id, quantity in requested.items():
        product = products.get_product(db, org_id, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if product.current_stock < quantity:
            raise InsufficientStockError(product.name, product.current_stock, quantity)
        catalog[product_id] = product

    if sale.customer_id and customers.get_customer(db, org_id, sale.customer_id) is None:
        raise NotFoundError(f"Customer {sale.customer_id} not found")

    # Compute totals
    for item in sale.items:
        product = catalog[item.product_id]
        if item.product_name is None:
            item.product_name = product.name
        if item.cost_price is None:
            item.cost_price = product.cost_price
        if item.line_total is None:
            item.line_total = item.quantity * item.selling_price
        if item.line_cost_total is None:
            item.line_cost_total = item.quantity * item.cost_price

    if sale.sub_total is None:
        sale.sub_total = sum(item.line_total for item in sale.items)
    if sale.grand_total is None:
        sale.grand_total = max(sale.sub_total - sale.discount + sale.tax, 0)
    if sale.total_cost is None:
        sale.total_cost = sum(item.line_cost_total for item in sale.items)
    items_sold = sum(item.quantity for item in sale.items)

    # Take the stock
    applied = []
    for item in sale.items:
        updated = db[products.COLLECTION].find_one_and_update(
            {"_id": oid(item.product_id), "org_id": org_id, "current_stock": {"$gte": item.quantity}},
            {
                "$inc": {
                    "current_stock": -item.quantity,
                    "total_sold_qty": item.quantity,
                    "total_revenue": item.line_total,
                },
                "$set": {"last_sale_date": now, "updated_at": now},
            },
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            _release_stock(db, org_id, applied)
            product = products.get_product(db, org_id, item.product_id)
            available = product.current_stock if product else 0
            raise InsufficientStockError(catalog[item.product_id].name, available, item.quantity)
        applied.append(item)

    undo = [lambda: _release_stock(db, org_id, applied)]
    try:
        invoice_number = generate_invoice_number(db, org_id, now)
        sale_doc = sale.model_dump()
        sale_doc.update(org_id=org_id, invoice_number=invoice_number, created_at=now)
        sale_id = str(db[COLLECTION].insert_one(sale_doc).inserted_id)
        undo.append(lambda: db[COLLECTION].delete_one({"_id": oid(sale_id)}))

        undo.append(lambda: db[stock_movements.COLLECTION].delete_many({"org_id": org_id, "sale_id": sale_id}))
        for item in sale.items:
            stock_movements.create_stock_movement(db, org_id, StockMovementCreate(
                product_id=item.product_id,
                product_name=item.product_name,
                type="OUT",
                quantity=item.quantity,
                unit_cost=item.cost_price,
                reason=f"Sale {invoice_number}",
                sale_id=sale_id,
            ))

        record_daily_sale(db, org_id, now.date(), sale.grand_total, sale.total_cost, items_sold)
        undo.append(lambda: record_daily_sale(db, org_id, now.date(), -sale.grand_total,
                                              -sale.total_cost, -items_sold, bills=-1))
        record_monthly_sale(db, org_id, now.date(), sale.grand_total, sale.total_cost, items_sold)
        undo.append(lambda: record_monthly_sale(db, org_id, now.date(), -sale.grand_total,
                                                -sale.total_cost, -items_sold, bills=-1))

        if sale.customer_id:
            inc = {"total_visits": 1, "total_spent": sale.grand_total}
            if sale.payment_mode == "credit":
                inc["total_credit"] = sale.grand_total
            customer = db[customers.COLLECTION].find_one_and_update(
                {"_id": oid(sale.customer_id), "org_id": org_id},
                {"$inc": inc, "$set": {"last_visit": now, "updated_at": now}},
                return_document=ReturnDocument.AFTER,
            )
            if customer is None:
                raise NotFoundError(f"Customer {sale.customer_id} not found")
            undo.append(lambda: db[customers.COLLECTION].update_one(
                {"_id": oid(sale.customer_id), "org_id": org_id},
                {"$inc": {field: -value for field, value in inc.items()}},
            ))
            add_transaction(db, org_id, sale.customer_id, "SALE", sale.grand_total,
                            customer.get("total_credit", 0), f"Sale Invoice #{invoice_number}",
                            reference_id=sale_id)
    except (PyMongoError, NotFoundError) as e:
        logger.error(f"Sale for org {org_id} failed after stock was taken, rolling back: {e}")
        for step in reversed(undo):
            step()
        raise

    logger.info(f"Recorded sale {invoice_number} ({sale_id}) for org {org_id}: {sale.grand_total:.2f}")
    return sale_id


def get_sales(db: Database, org_id: str, start: Optional[datetime] = None,
              end: Optional[datetime] = None) -> List[Sale]:
    query = {"org_id": org_id}
    created = {}
    if start is not None:
        created["$gte"] = start
    if end is not None:
        created["$lte"] = end
    if created:
        query["created_at"] = created
    docs = get_documents(db, COLLECTION, query, sort=[("created_at", DESCENDING)])
    return [sale_from_doc(d) for d in docs]


def get_sale(db: Database, org_id: str, sale_id: str) -> Optional[Sale]:
    doc = db[COLLECTION].find_one({"_id": oid(sale_id), "org_id": org_id})
    if doc is None:
        return None
    return sale_from_doc(doc)

import logging
import os
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

import customers
import daily_stats
import database
import products
import sales
import search
import stock_movements
import transactions
from database import get_db
from errors import DatabaseUnavailable, InsufficientStockError, InvalidIdError, NotFoundError
from schemas import (
    Customer, CustomerCreate, CustomerPayment, CustomerTransaction, CustomerUpdate,
    DailyStats, DailyStatsUpdate, MonthlyStats, Product, ProductCreate, ProductUpdate,
    Sale, SaleCreate, StockAdjustment, StockMovement,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Shop CRM & Inventory API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Errors

@app.exception_handler(InvalidIdError)
@app.exception_handler(InsufficientStockError)
async def bad_request_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DatabaseUnavailable)
async def database_unavailable_handler(request: Request, exc: DatabaseUnavailable):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.error(f"Store operation failed on {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Store operation failed"})


@app.get("/")
def read_root():
    return {"message": "Shop CRM Backend Running"}


@app.get("/test")
def test_database():
    response = {"backend": "✅ Running", "database": "❌ Not Available"}
    try:
        if database.db is not None:
            response["database"] = "✅ Connected"
            response["collections"] = database.db.list_collection_names()
        else:
            response["database"] = "❌ Not Configured"
    except PyMongoError as e:
        response["database"] = f"⚠️ Error: {str(e)[:80]}"
    return response


# Products
@app.get("/api/orgs/{org_id}/products", response_model=List[Product])
def list_products(org_id: str, db: Database = Depends(get_db)):
    return products.get_products(db, org_id)


@app.post("/api/orgs/{org_id}/products")
def create_product(org_id: str, product: ProductCreate, db: Database = Depends(get_db)):
    return {"id": products.create_product(db, org_id, product)}


@app.get("/api/orgs/{org_id}/products/search", response_model=List[Product])
def search_products(org_id: str, q: str = "", db: Database = Depends(get_db)):
    return search.search_products_by_name(db, org_id, q)


@app.get("/api/orgs/{org_id}/products/barcode/search", response_model=List[Product])
def search_barcodes(org_id: str, q: str = "", db: Database = Depends(get_db)):
    return search.search_products_by_barcode(db, org_id, q)


@app.get("/api/orgs/{org_id}/products/barcode/{barcode}", response_model=Product)
def get_product_by_barcode(org_id: str, barcode: str, db: Database = Depends(get_db)):
    product = products.find_product_by_barcode(db, org_id, barcode)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.get("/api/orgs/{org_id}/products/{product_id}", response_model=Product)
def get_product(org_id: str, product_id: str, db: Database = Depends(get_db)):
    product = products.get_product(db, org_id, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.put("/api/orgs/{org_id}/products/{product_id}")
def update_product(org_id: str, product_id: str, updates: ProductUpdate, db: Database = Depends(get_db)):
    products.update_product(db, org_id, product_id, updates)
    return {"ok": True}


@app.delete("/api/orgs/{org_id}/products/{product_id}")
def delete_product(org_id: str, product_id: str, db: Database = Depends(get_db)):
    products.delete_product(db, org_id, product_id)
    return {"ok": True}


@app.post("/api/orgs/{org_id}/products/{product_id}/adjust", response_model=Product)
def adjust_stock(org_id: str, product_id: str, adjustment: StockAdjustment, db: Database = Depends(get_db)):
    return products.adjust_stock(db, org_id, product_id, adjustment)


# Stock movements
@app.get("/api/orgs/{org_id}/stock-movements", response_model=List[StockMovement])
def list_stock_movements(org_id: str, product_id: Optional[str] = None, db: Database = Depends(get_db)):
    return stock_movements.get_stock_movements(db, org_id, product_id)


# Sales
@app.post("/api/orgs/{org_id}/sales")
def record_sale(org_id: str, sale: SaleCreate, db: Database = Depends(get_db)):
    sale_id = sales.record_sale(db, org_id, sale)
    recorded = sales.get_sale(db, org_id, sale_id)
    return {"id": sale_id, "invoice_number": recorded.invoice_number, "grand_total": recorded.grand_total}


@app.get("/api/orgs/{org_id}/sales", response_model=List[Sale])
def list_sales(org_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None,
               db: Database = Depends(get_db)):
    return sales.get_sales(db, org_id, start=start, end=end)


@app.get("/api/orgs/{org_id}/sales/{sale_id}", response_model=Sale)
def get_sale(org_id: str, sale_id: str, db: Database = Depends(get_db)):
    sale = sales.get_sale(db, org_id, sale_id)
    if sale is None:
        raise HTTPException(status_code=404, detail="Sale not found")
    return sale


# Customers
@app.get("/api/orgs/{org_id}/customers", response_model=List[Customer])
def list_customers(org_id: str, db: Database = Depends(get_db)):
    return customers.get_customers(db, org_id)


@app.post("/api/orgs/{org_id}/customers")
def create_customer(org_id: str, customer: CustomerCreate, db: Database = Depends(get_db)):
    return {"id": customers.create_customer(db, org_id, customer)}


@app.get("/api/orgs/{org_id}/customers/{customer_id}", response_model=Customer)
def get_customer(org_id: str, customer_id: str, db: Database = Depends(get_db)):
    customer = customers.get_customer(db, org_id, customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@app.put("/api/orgs/{org_id}/customers/{customer_id}")
def update_customer(org_id: str, customer_id: str, updates: CustomerUpdate, db: Database = Depends(get_db)):
    customers.update_customer(db, org_id, customer_id, updates)
    return {"ok": True}


@app.delete("/api/orgs/{org_id}/customers/{customer_id}")
def delete_customer(org_id: str, customer_id: str, db: Database = Depends(get_db)):
    customers.delete_customer(db, org_id, customer_id)
    return {"ok": True}


@app.post("/api/orgs/{org_id}/customers/{customer_id}/payments")
def record_payment(org_id: str, customer_id: str, payment: CustomerPayment, db: Database = Depends(get_db)):
    balance = customers.record_customer_payment(db, org_id, customer_id, payment.amount)
    return {"ok": True, "total_credit": balance}


@app.get("/api/orgs/{org_id}/customers/{customer_id}/transactions", response_model=List[CustomerTransaction])
def list_customer_transactions(org_id: str, customer_id: str, db: Database = Depends(get_db)):
    return transactions.get_customer_transactions(db, org_id, customer_id)


# Stats
@app.get("/api/orgs/{org_id}/stats/daily/{date}", response_model=DailyStats)
def get_daily_stats(org_id: str, date: str, db: Database = Depends(get_db)):
    try:
        stats = daily_stats.get_daily_stats(db, org_id, date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if stats is None:
        raise HTTPException(status_code=404, detail="No stats for this date")
    return stats


@app.put("/api/orgs/{org_id}/stats/daily/{date}")
def update_daily_stats(org_id: str, date: str, delta: DailyStatsUpdate, db: Database = Depends(get_db)):
    try:
        daily_stats.update_daily_stats(db, org_id, date, delta)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True}


@app.get("/api/orgs/{org_id}/stats/monthly/{month}", response_model=MonthlyStats)
def get_monthly_stats(org_id: str, month: str, db: Database = Depends(get_db)):
    try:
        stats = daily_stats.get_monthly_stats(db, org_id, month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if stats is None:
        raise HTTPException(status_code=404, detail="No stats for this month")
    return stats


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)

"""
Database Schemas for the Shop CRM & Inventory backend

Each Pydantic model below describes a MongoDB collection or the payload that
creates/updates one. Collection name is the lowercase of the record name
(e.g., Product -> "product", DailyStats -> "dailystats").

Every stored record is scoped to a tenant through ``org_id``.

This covers:
- Products (catalog with stock on hand and running sale/purchase totals)
- StockMovement (audit of quantity changes)
- Sales (invoices with line items)
- DailyStats / MonthlyStats (per-period sales rollups)
- Customers and CustomerTransaction (credit ledger)
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MovementType = Literal["IN", "OUT", "ADJUSTMENT"]
PaymentMode = Literal["cash", "card", "upi", "credit", "other"]
TransactionType = Literal["SALE", "PAYMENT", "OPENING_BALANCE"]


# Products

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Product name")
    sku: str = Field(..., description="Stock keeping unit")
    barcode: Optional[str] = Field(None, description="Barcode for scanning")
    category: str = Field("", description="Category name")
    description: Optional[str] = Field(None, description="Product description")
    cost_price: float = Field(0, ge=0, description="Unit cost price")
    selling_price: float = Field(..., ge=0, description="Unit selling price")
    current_stock: int = Field(0, ge=0, description="Opening quantity on hand")
    low_stock_threshold: int = Field(0, ge=0, description="Alert when stock falls to this level")


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    sku: Optional[str] = None
    barcode: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    cost_price: Optional[float] = Field(None, ge=0)
    selling_price: Optional[float] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)


class Product(BaseModel):
    id: str
    org_id: str
    name: str
    sku: str
    barcode: Optional[str] = None
    category: str = ""
    description: Optional[str] = None
    cost_price: float = 0
    selling_price: float = 0
    current_stock: int = Field(0, description="May go negative only where backorders are allowed")
    low_stock_threshold: int = 0
    total_sold_qty: int = 0
    total_purchased_qty: int = 0
    total_revenue: float = 0
    total_cost: float = 0
    last_sale_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class StockAdjustment(BaseModel):
    type: MovementType = Field(..., description="IN adds, OUT removes, ADJUSTMENT sets the exact count")
    quantity: int = Field(..., ge=0)
    unit_cost: float = Field(0, ge=0)
    reason: str = Field("", description="Why the stock changed")


# Stock movements

class StockMovementCreate(BaseModel):
    product_id: str = Field(..., description="Product ObjectId as string")
    product_name: Optional[str] = Field(None, description="Product name snapshot")
    type: MovementType
    quantity: int = Field(..., ge=0)
    unit_cost: float = Field(0, ge=0)
    reason: str = ""
    sale_id: Optional[str] = Field(None, description="Related sale id")


class StockMovement(StockMovementCreate):
    id: str
    org_id: str
    created_at: datetime


# Sales

class SaleItem(BaseModel):
    product_id: str = Field(..., description="Product ObjectId as string")
    product_name: Optional[str] = Field(None, description="Product name snapshot")
    quantity: int = Field(..., ge=1, description="Quantity sold")
    selling_price: float = Field(..., ge=0, description="Unit price at time of sale")
    cost_price: Optional[float] = Field(None, ge=0, description="Unit cost snapshot; defaults to the product's")
    line_total: Optional[float] = Field(None, ge=0, description="Computed: quantity * selling_price")
    line_cost_total: Optional[float] = Field(None, ge=0, description="Computed: quantity * cost_price")


class SaleCreate(BaseModel):
    items: List[SaleItem] = Field(..., min_length=1, description="List of line items")
    sub_total: Optional[float] = Field(None, ge=0, description="Sum of line totals")
    discount: float = Field(0, ge=0)
    tax: float = Field(0, ge=0)
    grand_total: Optional[float] = Field(None, ge=0, description="sub_total - discount + tax")
    total_cost: Optional[float] = Field(None, ge=0, description="Sum of line cost totals")
    total_paid: Optional[float] = Field(None, ge=0, description="Amount actually paid (0 for full credit)")
    payment_mode: PaymentMode = "cash"
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None


class Sale(SaleCreate):
    id: str
    org_id: str
    invoice_number: str
    created_at: datetime


# Statistics

class DailyStatsUpdate(BaseModel):
    """Fields a stats update may set. Only the fields supplied are written."""
    model_config = ConfigDict(extra="forbid")

    total_sales_amount: Optional[float] = None
    total_cost_amount: Optional[float] = None
    total_profit: Optional[float] = None
    total_bills: Optional[int] = None
    total_items_sold: Optional[int] = None


class DailyStats(BaseModel):
    id: str
    org_id: str
    date: str = Field(..., description="yyyy-MM-dd")
    total_sales_amount: float = 0
    total_cost_amount: float = 0
    total_profit: float = 0
    total_bills: int = 0
    total_items_sold: int = 0
    created_at: datetime


class MonthlyStats(BaseModel):
    id: str
    org_id: str
    month: str = Field(..., description="yyyy-MM")
    total_sales_amount: float = 0
    total_cost_amount: float = 0
    total_profit: float = 0
    total_bills: int = 0
    total_items_sold: int = 0
    created_at: datetime


# Customers

class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Customer name")
    phone: str = Field(..., description="Phone number")
    email: Optional[str] = Field(None, description="Email address")
    address: Optional[str] = Field(None, description="Address")
    total_credit: float = Field(0, description="Opening credit balance")


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class Customer(BaseModel):
    id: str
    org_id: str
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    total_credit: float = 0
    total_visits: int = 0
    total_spent: float = 0
    last_visit: datetime
    created_at: datetime
    updated_at: datetime


class CustomerPayment(BaseModel):
    amount: float = Field(..., gt=0)


class CustomerTransaction(BaseModel):
    id: str
    org_id: str
    customer_id: str
    type: TransactionType
    amount: float = Field(..., description="Positive for debit (sale), payment amount for credit")
    balance_after: float
    description: str
    reference_id: Optional[str] = Field(None, description="Sale id or payment id")
    date: datetime
    created_at: datetime
    updated_at: datetime

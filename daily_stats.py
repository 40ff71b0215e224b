"""
Per-day (and per-month) sales rollups.

One record per tenant and period, keyed ``"{org_id}_{period}"``.

``update_daily_stats`` is a read-then-write *replace* merge: the fields in the
update overwrite the stored ones. It suits callers that pass running totals.
Callers holding increments must use ``record_daily_sale``, which accumulates
with an atomic ``$inc`` upsert. The read-then-write path is not isolated; two
concurrent updates of the same day can lose one of the writes.
"""

import logging
from datetime import date as date_type, datetime
from typing import Optional, Union

from pymongo.database import Database

from database import decode_document, utcnow
from schemas import DailyStats, DailyStatsUpdate, MonthlyStats

logger = logging.getLogger(__name__)

DAILY_COLLECTION = "dailystats"
MONTHLY_COLLECTION = "monthlystats"

STAT_FIELDS = (
    "total_sales_amount",
    "total_cost_amount",
    "total_profit",
    "total_bills",
    "total_items_sold",
)


def format_date(value: Union[str, date_type]) -> str:
    """Normalise to ``yyyy-MM-dd``; strings in any other shape are rejected."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date_type):
        return value.isoformat()
    datetime.strptime(value, "%Y-%m-%d")
    if len(value) != 10:
        raise ValueError(f"Date must be yyyy-MM-dd: {value!r}")
    return value


def format_month(value: Union[str, date_type]) -> str:
    if isinstance(value, date_type):
        return value.strftime("%Y-%m")
    datetime.strptime(value, "%Y-%m")
    if len(value) != 7:
        raise ValueError(f"Month must be yyyy-MM: {value!r}")
    return value


def stats_key(org_id: str, period: str) -> str:
    return f"{org_id}_{period}"


def get_daily_stats(db: Database, org_id: str, date: Union[str, date_type]) -> Optional[DailyStats]:
    date = format_date(date)
    doc = db[DAILY_COLLECTION].find_one({"_id": stats_key(org_id, date)})
    if doc is None:
        return None
    return DailyStats(**decode_document(doc, timestamp_fields=("created_at",)))


def update_daily_stats(db: Database, org_id: str, date: Union[str, date_type],
                       delta: Union[DailyStatsUpdate, dict]) -> None:
    date = format_date(date)
    if isinstance(delta, dict):
        delta = DailyStatsUpdate(**delta)
    fields = delta.model_dump(exclude_unset=True, exclude_none=True)

    collection = db[DAILY_COLLECTION]
    key = stats_key(org_id, date)

    if collection.find_one({"_id": key}) is not None:
        if fields:
            collection.update_one({"_id": key}, {"$set": fields})
        return

    record = {"_id": key, "org_id": org_id, "date": date}
    record.update(dict.fromkeys(STAT_FIELDS, 0))
    record.update(fields)
    record["created_at"] = utcnow()
    collection.replace_one({"_id": key}, record, upsert=True)
    logger.info(f"Created daily stats {key}")


def _accumulate(db: Database, collection_name: str, org_id: str, period_field: str, period: str,
                amount: float, cost: float, items: int, bills: int) -> None:
    db[collection_name].update_one(
        {"_id": stats_key(org_id, period)},
        {
            "$inc": {
                "total_sales_amount": amount,
                "total_cost_amount": cost,
                "total_profit": amount - cost,
                "total_bills": bills,
                "total_items_sold": items,
            },
            "$setOnInsert": {"org_id": org_id, period_field: period, "created_at": utcnow()},
        },
        upsert=True,
    )


def record_daily_sale(db: Database, org_id: str, date: Union[str, date_type],
                      amount: float, cost: float, items: int, bills: int = 1) -> None:
    """Add a bill to the day's totals atomically. Negative values take one back out."""
    _accumulate(db, DAILY_COLLECTION, org_id, "date", format_date(date), amount, cost, items, bills)


def record_monthly_sale(db: Database, org_id: str, month: Union[str, date_type],
                        amount: float, cost: float, items: int, bills: int = 1) -> None:
    _accumulate(db, MONTHLY_COLLECTION, org_id, "month", format_month(month), amount, cost, items, bills)


def get_monthly_stats(db: Database, org_id: str, month: Union[str, date_type]) -> Optional[MonthlyStats]:
    month = format_month(month)
    doc = db[MONTHLY_COLLECTION].find_one({"_id": stats_key(org_id, month)})
    if doc is None:
        return None
    return MonthlyStats(**decode_document(doc, timestamp_fields=("created_at",)))

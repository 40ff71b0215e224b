from datetime import date
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError
from pymongo.errors import OperationFailure

from daily_stats import (
    get_daily_stats,
    get_monthly_stats,
    record_daily_sale,
    record_monthly_sale,
    update_daily_stats,
)
from schemas import DailyStatsUpdate

ORG = "org-1"
DAY = "2024-03-15"


def test_absent_day_is_none(db):
    assert get_daily_stats(db, ORG, DAY) is None


def test_first_update_seeds_zeroes(db):
    update_daily_stats(db, ORG, DAY, {"total_sales_amount": 120.0, "total_bills": 2})

    stats = get_daily_stats(db, ORG, DAY)
    assert stats.id == f"{ORG}_{DAY}"
    assert stats.org_id == ORG
    assert stats.date == DAY
    assert stats.total_sales_amount == 120.0
    assert stats.total_bills == 2
    assert stats.total_cost_amount == 0
    assert stats.total_profit == 0
    assert stats.total_items_sold == 0
    assert stats.created_at.tzinfo is not None


def test_second_update_replaces_only_given_fields(db):
    update_daily_stats(db, ORG, DAY, {"total_sales_amount": 120.0, "total_bills": 2})
    created_at = get_daily_stats(db, ORG, DAY).created_at

    update_daily_stats(db, ORG, DAY, DailyStatsUpdate(total_sales_amount=200.0, total_items_sold=7))

    stats = get_daily_stats(db, ORG, DAY)
    assert stats.total_sales_amount == 200.0
    assert stats.total_items_sold == 7
    assert stats.total_bills == 2
    assert stats.created_at == created_at


def test_update_is_not_additive(db):
    update_daily_stats(db, ORG, DAY, {"total_bills": 3})
    update_daily_stats(db, ORG, DAY, {"total_bills": 3})

    assert get_daily_stats(db, ORG, DAY).total_bills == 3


def test_empty_update_leaves_record(db):
    update_daily_stats(db, ORG, DAY, {"total_profit": 10.0})
    update_daily_stats(db, ORG, DAY, {})

    assert get_daily_stats(db, ORG, DAY).total_profit == 10.0


def test_round_trip(db):
    written = {
        "total_sales_amount": 1543.5,
        "total_cost_amount": 1100.25,
        "total_profit": 443.25,
        "total_bills": 12,
        "total_items_sold": 31,
    }
    update_daily_stats(db, ORG, DAY, written)

    stats = get_daily_stats(db, ORG, DAY)
    assert stats.model_dump(include=set(written)) == written


def test_days_and_tenants_are_separate(db):
    update_daily_stats(db, ORG, DAY, {"total_bills": 1})

    assert get_daily_stats(db, ORG, "2024-03-16") is None
    assert get_daily_stats(db, "org-2", DAY) is None


def test_date_objects_are_accepted(db):
    update_daily_stats(db, ORG, date(2024, 3, 15), {"total_bills": 4})

    assert get_daily_stats(db, ORG, DAY).total_bills == 4


@pytest.mark.parametrize("bad", ["15-03-2024", "2024-3-5", "2024/03/15", "yesterday"])
def test_malformed_date_is_rejected(db, bad):
    with pytest.raises(ValueError):
        update_daily_stats(db, ORG, bad, {"total_bills": 1})


def test_unknown_fields_are_rejected(db):
    with pytest.raises(ValidationError):
        update_daily_stats(db, ORG, DAY, {"total_refunds": 1})
    assert get_daily_stats(db, ORG, DAY) is None


def test_store_failure_propagates():
    db = MagicMock()
    db.__getitem__.return_value.find_one.side_effect = OperationFailure("not authorized")

    with pytest.raises(OperationFailure):
        update_daily_stats(db, ORG, DAY, {"total_bills": 1})
    with pytest.raises(OperationFailure):
        get_daily_stats(db, ORG, DAY)


def test_record_daily_sale_accumulates(db):
    record_daily_sale(db, ORG, DAY, amount=100.0, cost=70.0, items=3)
    record_daily_sale(db, ORG, DAY, amount=50.0, cost=20.0, items=1)

    stats = get_daily_stats(db, ORG, DAY)
    assert stats.total_sales_amount == 150.0
    assert stats.total_cost_amount == 90.0
    assert stats.total_profit == 60.0
    assert stats.total_bills == 2
    assert stats.total_items_sold == 4
    assert stats.date == DAY


def test_monthly_stats(db):
    assert get_monthly_stats(db, ORG, "2024-03") is None

    record_monthly_sale(db, ORG, date(2024, 3, 1), amount=10.0, cost=4.0, items=1)
    record_monthly_sale(db, ORG, "2024-03", amount=5.0, cost=1.0, items=2)

    stats = get_monthly_stats(db, ORG, "2024-03")
    assert stats.month == "2024-03"
    assert stats.total_bills == 2
    assert stats.total_profit == 10.0
    assert stats.total_items_sold == 3


def test_none_fields_are_ignored(db):
    update_daily_stats(db, ORG, DAY, {"total_bills": 5})
    update_daily_stats(db, ORG, DAY, {"total_bills": None, "total_profit": 1.5})

    stats = get_daily_stats(db, ORG, DAY)
    assert stats.total_bills == 5
    assert stats.total_profit == 1.5

"""
Prefix search over the product catalog.

MongoDB string range filters are case sensitive, so "starts with" is emulated
with ``field >= q`` and ``field <= q + PREFIX_SENTINEL``. Name search retries a
few casings of the query to approximate case-insensitive matching:

1. the query as typed
2. first letter capitalized, when the query starts with a lowercase ASCII letter
3. the query fully uppercased, when that differs from what was typed

Mixed internal casing ("iPhone" typed as "iphone") is never tried.
"""

import logging
import re
from typing import List

from pymongo import ASCENDING
from pymongo.database import Database

from products import COLLECTION, product_from_doc
from schemas import Product

logger = logging.getLogger(__name__)

PREFIX_SENTINEL = "\uf8ff"

NAME_MIN_LENGTH = 2
NAME_LIMIT = 10
BARCODE_MIN_LENGTH = 3
BARCODE_LIMIT = 5

_LOWER_ASCII_START = re.compile(r"^[a-z]")


def prefix_filter(org_id: str, field: str, prefix: str) -> dict:
    return {
        "org_id": org_id,
        field: {"$gte": prefix, "$lte": prefix + PREFIX_SENTINEL},
    }


def name_query_variants(name_query: str) -> List[str]:
    """Casings to try for a name search, in order, without repeats."""
    variants = [name_query]
    if _LOWER_ASCII_START.match(name_query):
        variants.append(name_query[0].upper() + name_query[1:])
    upper = name_query.upper()
    if upper != name_query and upper not in variants:
        variants.append(upper)
    return variants


def _run_prefix_query(db: Database, org_id: str, field: str, prefix: str, limit: int) -> List[Product]:
    cursor = (
        db[COLLECTION]
        .find(prefix_filter(org_id, field, prefix))
        .sort(field, ASCENDING)
        .limit(limit)
    )
    return [product_from_doc(doc) for doc in cursor]


def search_products_by_name(db: Database, org_id: str, name_query: str) -> List[Product]:
    if not name_query or len(name_query) < NAME_MIN_LENGTH:
        return []

    results: List[Product] = []
    for attempt in name_query_variants(name_query):
        results = _run_prefix_query(db, org_id, "name", attempt, NAME_LIMIT)
        if results:
            break
        logger.debug(f"No products for name prefix {attempt!r} in org {org_id}")
    return results


def search_products_by_barcode(db: Database, org_id: str, barcode_query: str) -> List[Product]:
    if not barcode_query or len(barcode_query) < BARCODE_MIN_LENGTH:
        return []
    return _run_prefix_query(db, org_id, "barcode", barcode_query, BARCODE_LIMIT)

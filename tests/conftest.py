from datetime import datetime, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app
from products import create_product
from schemas import ProductCreate

ORG = "org-1"


@pytest.fixture
def db():
    return mongomock.MongoClient()["shop_test"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def now():
    return datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_product(db):
    def _make(name="Rice", org_id=ORG, **kwargs):
        data = {"sku": name.upper().replace(" ", "-"), "selling_price": 50.0, "cost_price": 40.0}
        data.update(kwargs)
        return create_product(db, org_id, ProductCreate(name=name, **data))
    return _make

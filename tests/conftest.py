"""Shared fixtures: small hand-built tables and a fresh workspace store per test."""

import pytest
from fastapi.testclient import TestClient

from gridsight.services.table import Table
from gridsight.services.workspace import Workspace, WorkspaceStore


@pytest.fixture
def amounts_rows():
    return [
        {"id": "a", "amt": "10"},
        {"id": "b", "amt": "20"},
        {"id": "c", "amt": "30"},
    ]


@pytest.fixture
def amounts_table(amounts_rows):
    return Table(amounts_rows, name="amounts")


@pytest.fixture
def sales_table():
    return Table(
        [
            {"region": "North", "product": "Widget", "amount": "100", "date": "2024-01-15"},
            {"region": "North", "product": "Gadget", "amount": "50", "date": "2024-02-01"},
            {"region": "South", "product": "Widget", "amount": "75.5", "date": "2024-02-20"},
            {"region": "South", "product": "Widget", "amount": "24.5", "date": "2024-03-05"},
            {"region": None, "product": "Gadget", "amount": "10", "date": "2024-03-10"},
        ],
        name="sales",
    )


@pytest.fixture
def customers_table():
    return Table(
        [
            {"id": "1", "name": "Alice", "region_id": "r1"},
            {"id": "2", "name": "Bob", "region_id": "r2"},
            {"id": "3", "name": "Carol", "region_id": "r9"},
        ],
        name="customers",
    )


@pytest.fixture
def orders_table():
    return Table(
        [
            {"order_id": "o1", "customer_id": "1", "total": "30"},
            {"order_id": "o2", "customer_id": "1", "total": "12"},
            {"order_id": "o3", "customer_id": "2", "total": "7"},
            {"order_id": "o4", "customer_id": "4", "total": "99"},
        ],
        name="orders",
    )


@pytest.fixture
def regions_table():
    return Table(
        [
            {"id": "R1", "label": "North"},
            {"id": "r2", "label": "South"},
        ],
        name="regions",
    )


@pytest.fixture
def workspace():
    return Workspace()


@pytest.fixture
def store():
    return WorkspaceStore()


@pytest.fixture
def client(store):
    from gridsight.main import app
    from gridsight.store import get_store

    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

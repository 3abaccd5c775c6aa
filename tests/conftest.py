import os
from decimal import Decimal
from typing import Generator

# Keep the import-time engine off disk; tests bind their own engine below.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_JSON", "0")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from posapp import models
from posapp.db import Base, enable_sqlite_foreign_keys
from posapp.main import app, get_db


@pytest.fixture(scope="function")
def db_session() -> Generator:
    # Use in-memory SQLite with a single connection
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    enable_sqlite_foreign_keys(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    # Override dependency to use the same session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = override_get_db
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    client.post("/api/auth/register", json={
        "name": "Staff", "email": "staff@example.com", "password": "staffpass", "role": "ADMIN",
    })
    r = client.post("/api/auth/login", json={"email": "staff@example.com", "password": "staffpass"})
    return {"Authorization": f"Bearer {r.json()['accessToken']}"}


def make_product(db, name="Nasi Goreng", price="10.50", image="nasi.png", category="food",
                 description="fried rice") -> models.Product:
    product = models.Product(name=name, price=Decimal(price), image=image, category=category,
                             description=description)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def order_payload(*items, **customer) -> dict:
    payload = {
        "products": [{"id": pid, "quantity": qty} for pid, qty in items],
        "customerName": "Budi",
        "customerEmail": "budi@example.com",
        "customerPhone": "08123456789",
        "customerTableNumber": "7",
    }
    payload.update(customer)
    return payload

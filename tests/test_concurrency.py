import threading
from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from posapp import crud, models, schemas
from posapp.db import Base, enable_sqlite_foreign_keys
from tests.conftest import make_product, order_payload

WRITERS = 4
ORDERS_PER_WRITER = 10


def test_concurrent_orders_never_visible_without_items(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'orders.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        future=True,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)

    with Session() as db:
        # one disjoint pair of products per writer
        catalog = [
            (make_product(db, name=f"A{n}", price="2.50").id, make_product(db, name=f"B{n}", price="4.00").id)
            for n in range(WRITERS)
        ]

    done = threading.Event()
    headers_without_items = []

    def place_orders(product_ids):
        with Session() as db:
            for _ in range(ORDERS_PER_WRITER):
                order = schemas.TransactionCreate(**order_payload(*[(pid, 1) for pid in product_ids]))
                crud.create_transaction(db, order)

    def watch():
        while not done.is_set():
            with Session() as db:
                for transaction in crud.list_transactions(db):
                    if not transaction.items:
                        headers_without_items.append(transaction.id)

    reader = threading.Thread(target=watch)
    reader.start()
    try:
        with ThreadPoolExecutor(max_workers=WRITERS) as pool:
            list(pool.map(place_orders, catalog))
    finally:
        done.set()
        reader.join()

    assert headers_without_items == []
    with Session() as db:
        transactions = crud.list_transactions(db)
        assert len(transactions) == WRITERS * ORDERS_PER_WRITER
        assert all(len(t.items) == 2 for t in transactions)
        assert db.query(models.TransactionItem).count() == WRITERS * ORDERS_PER_WRITER * 2
    engine.dispose()

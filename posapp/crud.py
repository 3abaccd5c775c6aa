from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .auth import hash_password, verify_password
from .utils import generate_transaction_id, generate_transaction_item_id

logger = structlog.get_logger(__name__)

# Business rule: money stored rounded to 2 decimals

def round_amount(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# -------------------- Users --------------------

def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(db: Session, user: schemas.UserRegister) -> models.User:
    if get_user_by_email(db, user.email):
        raise ValueError("Email already exists")

    db_user = models.User(
        name=user.name,
        email=user.email,
        password=hash_password(user.password),
        role=models.Role(user.role),
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same email.
        db.rollback()
        raise ValueError("Email already exists") from e
    db.refresh(db_user)
    logger.info("user_registered", user_id=db_user.id, role=db_user.role.value)
    return db_user


def authenticate(db: Session, email: str, password: str) -> models.User | None:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password):
        return None
    return user


# -------------------- Products --------------------

def list_products(db: Session) -> List[models.Product]:
    return db.query(models.Product).order_by(models.Product.created_at.desc()).all()


def create_product(db: Session, product: schemas.ProductCreate) -> models.Product:
    db_product = models.Product(
        name=product.name,
        image=product.image.strip(),
        category=product.category,
        description=product.description,
        price=round_amount(product.price),
    )
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    logger.info("product_created", product_id=db_product.id)
    return db_product


def get_product(db: Session, product_id: str) -> models.Product | None:
    return db.get(models.Product, product_id)


def delete_product(db: Session, product_id: str) -> schemas.ProductRead | None:
    product = db.get(models.Product, product_id)
    if not product:
        return None
    deleted = schemas.ProductRead.model_validate(product)
    db.delete(product)
    db.commit()
    logger.info("product_deleted", product_id=product_id)
    return deleted


# -------------------- Transactions --------------------

def create_transaction(db: Session, order: schemas.TransactionCreate) -> dict:
    """Place an order for the requested products.

    Requested ids that are not in the catalog are dropped. Raises ValueError
    when none of them resolve. The header and its items are committed together.
    """
    requested = order.products
    products = (
        db.query(models.Product)
        .filter(models.Product.id.in_([item.id for item in requested]))
        .all()
    )
    if not products:
        raise ValueError("Products not found")

    ordered = []
    for product in products:
        # first matching entry wins when an id is requested twice
        quantity = next(item.quantity for item in requested if item.id == product.id)
        ordered.append({
            "id": product.id,
            "name": product.name,
            "image": product.image,
            "category": product.category,
            "description": product.description,
            "price": product.price,
            "quantity": quantity,
        })

    total = round_amount(sum((p["price"] * p["quantity"] for p in ordered), Decimal("0")))
    transaction = models.Transaction(
        id=generate_transaction_id(),
        total=total,
        status=models.TransactionStatus.PENDING,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        customer_table_number=order.customer_table_number,
        snap_token=None,
        snap_redirect_url=None,
        payment_method=None,
    )
    created = {
        "id": transaction.id,
        "total": total,
        "status": transaction.status,
        "customer_name": transaction.customer_name,
        "customer_email": transaction.customer_email,
        "customer_phone": transaction.customer_phone,
        "customer_table_number": transaction.customer_table_number,
        "snap_token": None,
        "snap_redirect_url": None,
        "payment_method": None,
        "products": ordered,
    }

    db.add(transaction)
    try:
        db.flush()
        db.add_all([
            models.TransactionItem(
                id=generate_transaction_item_id(),
                transaction_id=transaction.id,
                product_id=p["id"],
                product_name=p["name"],
                price=p["price"],
                quantity=p["quantity"],
            )
            for p in ordered
        ])
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("transaction_create_failed", transaction_id=created["id"], exc_info=True)
        raise

    logger.info("transaction_created", transaction_id=created["id"], items=len(ordered), total=str(total))
    return created


def _transactions_with_items(db: Session):
    return db.query(models.Transaction).options(
        selectinload(models.Transaction.items).selectinload(models.TransactionItem.product)
    )


def list_transactions(db: Session, status: Optional[models.TransactionStatus] = None) -> List[models.Transaction]:
    query = _transactions_with_items(db)
    if status is not None:
        query = query.filter(models.Transaction.status == status)
    return query.order_by(models.Transaction.created_at).all()


def get_transaction(db: Session, transaction_id: str) -> models.Transaction | None:
    return _transactions_with_items(db).filter(models.Transaction.id == transaction_id).first()


def update_transaction_status(db: Session, transaction_id: str, status: models.TransactionStatus) -> models.Transaction | None:
    transaction = db.get(models.Transaction, transaction_id)
    if not transaction:
        return None
    transaction.status = status
    transaction.payment_method = None
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    logger.info("transaction_status_updated", transaction_id=transaction_id, status=status.value)
    return transaction

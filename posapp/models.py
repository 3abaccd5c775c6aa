import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .db import Base
from .utils import generate_object_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELED = "CANCELED"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    # pbkdf2 hash, never the plaintext
    password = Column(String, nullable=False)
    role = Column(Enum(Role, name="role"), nullable=False, default=Role.USER)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Product(Base):
    __tablename__ = "products"

    id = Column(String(24), primary_key=True, default=generate_object_id)
    name = Column(String, nullable=False)
    image = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True)
    total = Column(Numeric(12, 2), nullable=False)
    status = Column(Enum(TransactionStatus, name="transaction_status"), nullable=False,
                    default=TransactionStatus.PENDING, index=True)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    customer_table_number = Column(String, nullable=False)
    # payment gateway placeholders, never filled in by this service
    snap_token = Column(String, nullable=True)
    snap_redirect_url = Column(String, nullable=True)
    payment_method = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship("TransactionItem", back_populates="transaction", cascade="all, delete-orphan")


class TransactionItem(Base):
    __tablename__ = "transaction_items"

    id = Column(String, primary_key=True)
    transaction_id = Column(String, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    # Lookup reference only: deleting a product must leave past orders readable.
    product_id = Column(String(24), nullable=False, index=True)
    product_name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    transaction = relationship("Transaction", back_populates="items")
    product = relationship(
        "Product",
        primaryjoin="foreign(TransactionItem.product_id) == Product.id",
        viewonly=True,
    )

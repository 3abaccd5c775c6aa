from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Annotated, Generic, List, Optional, TypeVar

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, PlainSerializer, PositiveInt
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from .models import Role, TransactionStatus
from .utils import sanitize_input

T = TypeVar("T")

# Decimal in the database, plain JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def is_blank(value) -> bool:
    if isinstance(value, str):
        return not value.strip()
    return value is None or value == []


def required(message: str):
    def check(value):
        if is_blank(value):
            raise ValueError(message)
        return value
    return check


def stringify(value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("invalid email")
    return value


def check_role(value: str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValueError("invalid role")


def check_status(value: str) -> TransactionStatus:
    try:
        return TransactionStatus(value)
    except ValueError:
        raise ValueError("invalid status")


def parse_price(value):
    if is_blank(value):
        raise ValueError("price is required")
    if isinstance(value, bool):
        raise ValueError("invalid price")
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        raise ValueError("invalid price")
    if not price.is_finite() or price < 0:
        raise ValueError("invalid price")
    return price


def RequiredStr(message: str):
    return Annotated[Optional[str], BeforeValidator(stringify), AfterValidator(required(message))]


def clean_text(value):
    return sanitize_input(value) if isinstance(value, str) else value


def RequiredText(message: str):
    """Free text that is stripped of markup before the emptiness check."""
    return Annotated[Optional[str], BeforeValidator(stringify), AfterValidator(clean_text),
                     AfterValidator(required(message))]


def required_field():
    return Field(default=None, validate_default=True)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Envelope(CamelModel, Generic[T]):
    status: str
    status_code: int
    msg: str
    data: Optional[T] = None


# -------------------- Auth --------------------

class UserRegister(CamelModel):
    name: RequiredText("name is required") = required_field()
    email: Annotated[RequiredStr("email is required"), AfterValidator(check_email)] = required_field()
    password: RequiredStr("password is required") = required_field()
    role: Annotated[RequiredStr("role is required"), AfterValidator(check_role)] = required_field()


class UserLogin(CamelModel):
    email: Annotated[RequiredStr("email is required"), AfterValidator(check_email)] = required_field()
    password: RequiredStr("password is required") = required_field()


class UserRead(CamelModel):
    id: int
    name: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime


class LoginEnvelope(Envelope[UserRead]):
    access_token: str


# -------------------- Products --------------------

class ProductCreate(CamelModel):
    name: RequiredText("name is required") = required_field()
    image: RequiredStr("image is required") = required_field()
    category: RequiredText("category is required") = required_field()
    description: RequiredText("description is required") = required_field()
    price: Annotated[Optional[Decimal], BeforeValidator(parse_price)] = required_field()


class ProductRead(CamelModel):
    id: str
    name: str
    image: str
    category: str
    description: str
    price: Money
    created_at: datetime
    updated_at: datetime


# -------------------- Transactions --------------------

class TransactionProductIn(CamelModel):
    id: str = Field(..., min_length=1)
    quantity: PositiveInt


class TransactionCreate(CamelModel):
    products: Annotated[Optional[List[TransactionProductIn]], AfterValidator(required("product is required"))] = required_field()
    customer_name: RequiredText("name is required") = required_field()
    customer_email: RequiredText("email is required") = required_field()
    customer_phone: RequiredText("phone is required") = required_field()
    customer_table_number: RequiredText("number table is required") = required_field()


class TransactionStatusUpdate(CamelModel):
    status: Annotated[RequiredStr("status is required"), AfterValidator(check_status)] = required_field()


class OrderedProduct(CamelModel):
    """A catalog product as it was resolved while placing an order."""
    id: str
    name: str
    image: str
    category: str
    description: str
    price: Money
    quantity: int


class TransactionProductRead(CamelModel):
    id: str
    name: str
    price: Money
    quantity: int
    image: Optional[str] = None


class TransactionBase(CamelModel):
    id: str
    total: Money
    status: TransactionStatus
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_table_number: str
    snap_token: Optional[str] = None
    snap_redirect_url: Optional[str] = None
    payment_method: Optional[str] = None


class TransactionCreated(TransactionBase):
    products: List[OrderedProduct]


class TransactionRead(TransactionBase):
    products: List[TransactionProductRead]


class TransactionHeader(TransactionBase):
    created_at: datetime
    updated_at: datetime

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from . import crud, schemas
from .auth import authenticate_user, create_access_token
from .config import get_settings
from .db import Base, engine, get_db
from .errors import BadRequestError, NotFoundError, UnauthenticatedError, envelope, register_error_handlers
from .log import configure_logging
from .models import TransactionStatus
from .utils import is_object_id, reform_transaction

settings = get_settings()
configure_logging(settings.log_level, settings.log_json)
logger = structlog.get_logger(__name__)

# Create tables if not existing. In production, use Alembic.
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="POS Order API",
    description="Users, product catalog and table-side orders for a point-of-sale client.",
    version="1.0.0",
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
register_error_handlers(app)

router = APIRouter(prefix="/api")


@app.get("/")
async def root():
    return {"msg": "hello world"}


@app.get("/health")
async def health():
    return {"status": "ok"}


# -------------------- Auth --------------------

@router.post("/auth/register", response_model=schemas.Envelope[schemas.UserRead], status_code=201, tags=["Auth"])
def register(user: schemas.UserRegister, db: Session = Depends(get_db)):
    try:
        created = crud.create_user(db, user)
    except ValueError as e:
        raise UnauthenticatedError(str(e))
    return envelope(status.HTTP_201_CREATED, "Successfully register", data=created)


@router.post("/auth/login", response_model=schemas.LoginEnvelope, tags=["Auth"])
def login(payload: schemas.UserLogin, db: Session = Depends(get_db)):
    user = crud.authenticate(db, payload.email, payload.password)
    if not user:
        logger.info("login_failed")
        raise UnauthenticatedError("Invalid credentials")
    token = create_access_token(user.id, user.role.value)
    return envelope(status.HTTP_200_OK, "Successfully login", accessToken=token, data=user)


@router.post("/auth/logout", tags=["Auth"])
def logout(response: Response):
    response.delete_cookie("token", httponly=True)
    return envelope(status.HTTP_200_OK, "Logout successful")


# -------------------- Products --------------------

def checked_product_id(product_id: str) -> str:
    if not is_object_id(product_id):
        raise NotFoundError(f"no product with id {product_id}")
    return product_id


@router.get("/product", response_model=schemas.Envelope[List[schemas.ProductRead]], tags=["Product"])
def list_products(db: Session = Depends(get_db)):
    return envelope(status.HTTP_200_OK, "SUCCESS", data=crud.list_products(db))


@router.post("/product", response_model=schemas.Envelope[schemas.ProductRead], status_code=201, tags=["Product"],
             dependencies=[Depends(authenticate_user)])
def create_product(product: schemas.ProductCreate, db: Session = Depends(get_db)):
    created = crud.create_product(db, product)
    return envelope(status.HTTP_201_CREATED, "Successfully create product", data=created)


@router.get("/product/{product_id}", response_model=schemas.Envelope[schemas.ProductRead], tags=["Product"])
def get_product(product_id: str = Depends(checked_product_id), db: Session = Depends(get_db)):
    return envelope(status.HTTP_200_OK, "SUCCESS", data=crud.get_product(db, product_id))


@router.delete("/product/{product_id}", response_model=schemas.Envelope[schemas.ProductRead], status_code=202,
               tags=["Product"], dependencies=[Depends(authenticate_user)])
def delete_product(product_id: str = Depends(checked_product_id), db: Session = Depends(get_db)):
    deleted = crud.delete_product(db, product_id)
    if not deleted:
        raise NotFoundError(f"no product with id {product_id}")
    return envelope(status.HTTP_202_ACCEPTED, "Successfully delete product", data=deleted)


# -------------------- Transactions --------------------

@router.post("/transaction", response_model=schemas.Envelope[schemas.TransactionCreated], status_code=201,
             tags=["Transaction"])
def create_transaction(order: schemas.TransactionCreate, db: Session = Depends(get_db)):
    try:
        created = crud.create_transaction(db, order)
    except ValueError as e:
        raise NotFoundError(str(e))
    return envelope(status.HTTP_201_CREATED, "Successfully created transactions", data=created)


def transaction_status_filter(value: Optional[str] = Query(default=None, alias="status")) -> Optional[TransactionStatus]:
    # an empty ?status= means no filter
    if not value:
        return None
    try:
        return TransactionStatus(value)
    except ValueError:
        raise BadRequestError(["invalid status"])


@router.get("/transaction", response_model=schemas.Envelope[List[schemas.TransactionRead]], tags=["Transaction"])
def list_transactions(status_filter: Optional[TransactionStatus] = Depends(transaction_status_filter),
                      db: Session = Depends(get_db)):
    transactions = crud.list_transactions(db, status_filter)
    return envelope(status.HTTP_200_OK, "SUCCESS", data=[reform_transaction(t) for t in transactions])


@router.get("/transaction/{transaction_id}", response_model=schemas.Envelope[schemas.TransactionRead],
            tags=["Transaction"])
def get_transaction(transaction_id: str, db: Session = Depends(get_db)):
    transaction = crud.get_transaction(db, transaction_id)
    if not transaction:
        raise NotFoundError("Transaction not found")
    return envelope(status.HTTP_200_OK, "SUCCESS", data=reform_transaction(transaction))


@router.post("/transaction/{transaction_id}", response_model=schemas.Envelope[schemas.TransactionHeader],
             status_code=202, tags=["Transaction"])
def update_transaction_status(transaction_id: str, payload: schemas.TransactionStatusUpdate,
                              db: Session = Depends(get_db)):
    updated = crud.update_transaction_status(db, transaction_id, payload.status)
    if not updated:
        raise NotFoundError("Transaction not found")
    return envelope(status.HTTP_202_ACCEPTED, "Successfully update transaction", data=updated)


app.include_router(router)

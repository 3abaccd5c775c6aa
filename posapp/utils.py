import html
import re
import secrets
import string
from typing import Optional

import bleach

ID_ALPHABET = string.ascii_letters + string.digits
OBJECT_ID_RE = re.compile(r"^[0-9a-f]{24}$")


def sanitize_input(value: Optional[str]) -> str:
    """Sanitize a user-supplied string before it is stored.

    - Removes NULL bytes
    - Strips HTML tags using bleach.clean(..., strip=True), then undoes its
      entity escaping so plain text like "Fish & Chips" is stored as typed
    - Trims whitespace
    """
    if value is None:
        return ""
    val = value.replace("\x00", "")
    val = html.unescape(bleach.clean(val, tags=set(), strip=True))
    return val.strip()


def random_string(size: int) -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(size))


def generate_transaction_id() -> str:
    return f"TRX-{random_string(4)}-{random_string(8)}"


def generate_transaction_item_id() -> str:
    return f"TRX-ITEM-{random_string(10)}"


def generate_object_id() -> str:
    return secrets.token_hex(12)


def is_object_id(value: str) -> bool:
    return bool(OBJECT_ID_RE.match(value or ""))


def reform_transaction(transaction) -> dict:
    """Flatten a stored transaction into the shape clients consume.

    Item name and price come from the snapshot taken when the order was
    placed; the image is looked up on the product as it is now.
    """
    return {
        "id": transaction.id,
        "total": transaction.total,
        "status": transaction.status,
        "customer_name": transaction.customer_name,
        "customer_email": transaction.customer_email,
        "customer_phone": transaction.customer_phone,
        "customer_table_number": transaction.customer_table_number,
        "snap_token": transaction.snap_token,
        "snap_redirect_url": transaction.snap_redirect_url,
        "payment_method": transaction.payment_method,
        "products": [
            {
                "id": item.product_id,
                "name": item.product_name,
                "price": item.price,
                "quantity": item.quantity,
                "image": item.product.image if item.product is not None else None,
            }
            for item in transaction.items
        ],
    }

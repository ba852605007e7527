from decimal import Decimal
from typing import Optional, Dict, Any, List

import pydantic
from pydantic import BaseModel, Field

from .errors import ValidationError
from .images import encode_image
from .models import Product, CheckoutReceipt

MAX_QUANTITY = 2**31 - 1

class ProductIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    # bounds of the prod_price DECIMAL(10,2) and prod_quan INT columns
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(ge=0, le=MAX_QUANTITY)
    code: str = Field(min_length=1, max_length=64)

    model_config = {"str_strip_whitespace": True}

class ProductOut(BaseModel):
    prod_id: int
    prod_name: str
    prod_price: float
    prod_quan: int
    prod_code: str
    prod_img: Optional[str] = None

class CheckoutItem(BaseModel):
    prod_id: int
    quantity: int = Field(default=1, ge=1)

class CheckoutRequest(BaseModel):
    products: List[CheckoutItem] = Field(min_length=1)

def parse_product_form(
    prod_name: Optional[str],
    prod_price: Optional[str],
    prod_quan: Optional[str],
    prod_code: Optional[str],
) -> ProductIn:
    """Build a ProductIn from raw multipart fields, reporting every bad field at once."""
    raw = {"name": prod_name, "price": prod_price, "quantity": prod_quan, "code": prod_code}
    form_names = {"name": "prod_name", "price": "prod_price", "quantity": "prod_quan", "code": "prod_code"}
    try:
        return ProductIn(**{k: v for k, v in raw.items() if v is not None})
    except pydantic.ValidationError as exc:
        problems = []
        for err in exc.errors():
            field = form_names.get(str(err["loc"][0]), str(err["loc"][0])) if err["loc"] else "form"
            problems.append(f"{field}: {err['msg']}")
        raise ValidationError("; ".join(problems)) from exc

def _make_product_dict(p: Product) -> Dict[str, Any]:
    return {
        "prod_id": p.id,
        "prod_name": p.name,
        "prod_price": p.price,
        "prod_quan": p.quantity,
        "prod_code": p.code,
        "prod_img": encode_image(p.image) if p.image is not None else None,
    }

def product_out(p: Product) -> ProductOut:
    return ProductOut(**_make_product_dict(p))

def receipt_dict(receipt: CheckoutReceipt) -> Dict[str, Any]:
    return {
        "message": "Checkout successful",
        "items": [
            {"prod_id": line.product_id, "quantity": line.quantity, "prod_quan": line.remaining}
            for line in receipt.items
        ],
    }

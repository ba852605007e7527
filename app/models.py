# app/models.py
from pydantic import BaseModel
from typing import Optional

class Product(BaseModel):
    id: int
    name: str
    price: float
    quantity: int
    code: str
    image: Optional[bytes] = None

class CheckoutLine(BaseModel):
    product_id: int
    quantity: int
    remaining: int

class CheckoutReceipt(BaseModel):
    items: list[CheckoutLine]

# sdk/pystore.py
import base64
import mimetypes
from pathlib import Path
from typing import Iterable, List, Optional, Union

import httpx
import requests

CheckoutItems = Iterable[Union[int, dict]]


def _checkout_payload(items: CheckoutItems) -> dict:
    # accept bare ids or {"prod_id":..., "quantity":...} dicts
    products = []
    for it in items:
        if isinstance(it, dict):
            products.append({"prod_id": int(it["prod_id"]), "quantity": int(it.get("quantity", 1))})
        else:
            products.append({"prod_id": int(it), "quantity": 1})
    return {"products": products}


def decode_image(product: dict) -> Optional[bytes]:
    """Return the raw image bytes of a product as returned by the API."""
    img = product.get("prod_img")
    return base64.b64decode(img) if img else None


class StoreClient:
    def __init__(self, base_url: str = "http://localhost:3000", timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout

    def _form(self, name: str, price: float, quantity: int, code: str) -> dict:
        return {"prod_name": name, "prod_price": str(price), "prod_quan": str(quantity), "prod_code": code}

    def _files(self, image_path: Optional[str]):
        if not image_path:
            return None
        path = Path(image_path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return {"prod_img": (path.name, path.read_bytes(), content_type)}

    # Products
    def upload_product(self, name: str, price: float, quantity: int, code: str, image_path: Optional[str] = None):
        r = self.session.post(
            f"{self.base_url}/api/upload",
            data=self._form(name, price, quantity, code),
            files=self._files(image_path),
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json()

    def list_products(self) -> List[dict]:
        r = self.session.get(f"{self.base_url}/api/products", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def get_product(self, product_id: int):
        r = self.session.get(f"{self.base_url}/api/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def update_product(self, product_id: int, name: str, price: float, quantity: int, code: str,
                       image_path: Optional[str] = None):
        r = self.session.put(
            f"{self.base_url}/api/products/{product_id}",
            data=self._form(name, price, quantity, code),
            files=self._files(image_path),
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json()

    def delete_product(self, product_id: int):
        r = self.session.delete(f"{self.base_url}/api/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Checkout
    def checkout(self, items: CheckoutItems):
        r = self.session.post(f"{self.base_url}/api/checkout", json=_checkout_payload(items), timeout=self.timeout)
        # no raise_for_status(): callers inspect 404/409 themselves
        return r

    async def checkout_async(self, items: CheckoutItems):
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(f"{self.base_url}/api/checkout", json=_checkout_payload(items))

    def health(self):
        r = self.session.get(f"{self.base_url}/health", timeout=self.timeout)
        r.raise_for_status()
        return r.json()


if __name__ == "__main__":
    import argparse

    from rich import print_json

    parser = argparse.ArgumentParser(description="PyStore catalog client")
    parser.add_argument("--base-url", default="http://127.0.0.1:3000")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list-products", help="List all products")

    gp = subparsers.add_parser("get-product", help="Get a product by its ID")
    gp.add_argument("--product-id", type=int, required=True)

    for cmd, help_text in (("upload-product", "Create a product"), ("update-product", "Replace a product")):
        sp = subparsers.add_parser(cmd, help=help_text)
        if cmd == "update-product":
            sp.add_argument("--product-id", type=int, required=True)
        sp.add_argument("--name", required=True)
        sp.add_argument("--price", type=float, required=True)
        sp.add_argument("--quantity", type=int, required=True)
        sp.add_argument("--code", required=True)
        sp.add_argument("--image", help="Path to an image file")

    dp = subparsers.add_parser("delete-product", help="Delete a product")
    dp.add_argument("--product-id", type=int, required=True)

    co = subparsers.add_parser("checkout", help="Check out one unit of each given product id")
    co.add_argument("product_ids", type=int, nargs="+")

    args = parser.parse_args()
    c = StoreClient(base_url=args.base_url)

    if args.command == "list-products":
        out = c.list_products()
    elif args.command == "get-product":
        out = c.get_product(args.product_id)
    elif args.command == "upload-product":
        out = c.upload_product(args.name, args.price, args.quantity, args.code, args.image)
    elif args.command == "update-product":
        out = c.update_product(args.product_id, args.name, args.price, args.quantity, args.code, args.image)
    elif args.command == "delete-product":
        out = c.delete_product(args.product_id)
    else:
        out = c.checkout(args.product_ids).json()
    print_json(data=out)

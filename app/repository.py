import logging
from typing import List, Optional

from sqlalchemy import delete, insert, select, update

from .core import ProductIn
from .database import Database, products
from .errors import NotFoundError
from .images import decode_image, encode_image
from .models import Product

logger = logging.getLogger(__name__)


def _row_to_product(row) -> Product:
    return Product(
        id=row.prod_id,
        name=row.prod_name,
        price=float(row.prod_price),
        quantity=row.prod_quan,
        code=row.prod_code,
        image=decode_image(row.prod_img) if row.prod_img is not None else None,
    )


class ProductRepository:
    """CRUD over the products table. Holds no product state of its own."""

    def __init__(self, database: Database):
        self._db = database

    def create(self, product: ProductIn, image: Optional[bytes] = None) -> int:
        values = {
            "prod_name": product.name,
            "prod_price": product.price,
            "prod_quan": product.quantity,
            "prod_code": product.code,
            "prod_img": encode_image(image) if image is not None else None,
        }
        with self._db.transaction() as conn:
            result = conn.execute(insert(products).values(**values))
            product_id = result.inserted_primary_key[0]
        logger.info("Product %s created (code=%s)", product_id, product.code)
        return product_id

    def list(self) -> List[Product]:
        with self._db.connection() as conn:
            rows = conn.execute(select(products).order_by(products.c.prod_id)).all()
        return [_row_to_product(r) for r in rows]

    def get(self, product_id: int) -> Product:
        with self._db.connection() as conn:
            row = conn.execute(select(products).where(products.c.prod_id == product_id)).first()
        if row is None:
            raise NotFoundError(product_id)
        return _row_to_product(row)

    def update(self, product_id: int, product: ProductIn, image: Optional[bytes] = None) -> Product:
        """
        Replace name, price, quantity and code of an existing product.

        The stored image is only overwritten when `image` is given. Raises
        NotFoundError when no row has `product_id`.
        """
        values = {
            "prod_name": product.name,
            "prod_price": product.price,
            "prod_quan": product.quantity,
            "prod_code": product.code,
        }
        if image is not None:
            values["prod_img"] = encode_image(image)

        with self._db.transaction() as conn:
            result = conn.execute(
                update(products).where(products.c.prod_id == product_id).values(**values)
            )
            if result.rowcount == 0:
                raise NotFoundError(product_id)
            row = conn.execute(select(products).where(products.c.prod_id == product_id)).one()
        logger.info("Product %s updated (image %s)", product_id, "replaced" if image is not None else "kept")
        return _row_to_product(row)

    def delete(self, product_id: int) -> None:
        with self._db.transaction() as conn:
            result = conn.execute(delete(products).where(products.c.prod_id == product_id))
        if result.rowcount:
            logger.info("Product %s deleted", product_id)
        else:
            logger.debug("Delete of missing product %s ignored", product_id)

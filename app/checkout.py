import logging
import time
from typing import Sequence

from sqlalchemy import select, update

from .core import CheckoutItem
from .database import Database, products
from .errors import CheckoutTimeoutError, InsufficientStockError, LockTimeoutError, NotFoundError, StoreError
from .models import CheckoutLine, CheckoutReceipt

logger = logging.getLogger(__name__)


class CheckoutCoordinator:
    """
    Applies a batch of stock decrements as one all-or-nothing unit.

    Each line item is a single guarded UPDATE, so the stock check and the
    decrement happen in the same statement; the batch shares one transaction,
    so a failing item leaves every product's quantity untouched.
    """

    def __init__(self, database: Database, timeout: float = 5.0, clock=time.monotonic):
        self._db = database
        self.timeout = timeout
        self._clock = clock

    def checkout(self, items: Sequence[CheckoutItem]) -> CheckoutReceipt:
        deadline = self._clock() + self.timeout
        lines = []
        try:
            with self._db.transaction(lock_timeout=self.timeout) as conn:
                for item in items:
                    result = conn.execute(
                        update(products)
                        .where(products.c.prod_id == item.prod_id)
                        .where(products.c.prod_quan >= item.quantity)
                        .values(prod_quan=products.c.prod_quan - item.quantity)
                    )
                    if result.rowcount == 0:
                        exists = conn.execute(
                            select(products.c.prod_id).where(products.c.prod_id == item.prod_id)
                        ).first()
                        if exists is None:
                            raise NotFoundError(item.prod_id)
                        raise InsufficientStockError(item.prod_id, item.quantity)

                    remaining = conn.execute(
                        select(products.c.prod_quan).where(products.c.prod_id == item.prod_id)
                    ).scalar_one()
                    lines.append(CheckoutLine(product_id=item.prod_id, quantity=item.quantity, remaining=remaining))

                    if self._clock() > deadline:
                        raise CheckoutTimeoutError(self.timeout)
        except LockTimeoutError as exc:
            logger.warning("Checkout rolled back after waiting on a lock: %s", exc)
            raise CheckoutTimeoutError(self.timeout) from exc
        except StoreError as exc:
            logger.warning("Checkout rolled back: %s", exc)
            raise

        logger.info("Checkout committed: %s", ", ".join(f"{line.product_id}x{line.quantity}" for line in lines))
        return CheckoutReceipt(items=lines)

# order_engine/services/stock_ledger.py
from typing import Dict, Iterable, Tuple

from sqlalchemy.orm import Session

from order_engine.data.models.product import ProductModel
from order_engine.domain.errors import InsufficientStockError, ProductNotFoundError, StockIntegrityError
from order_engine.repos.product_repo import ProductRepo
from order_engine.utils.logging import get_logger

logger = get_logger(__name__)


class StockLedger:
    """
    -rezerwacja stanu (lock + sprawdzenie + dekrementacja)
    -zwrot stanu przy anulowaniu
    Wszystko w transakcji wołającego; commit/rollback robi koordynator.
    """

    def __init__(self, db: Session, products: ProductRepo | None = None):
        self.products = products or ProductRepo(db)

    def reserve(self, product_id: int, quantity: int) -> ProductModel:
        product = self.products.get_product_for_update(product_id)

        if product is None or product.is_deleted:
            raise ProductNotFoundError(product_id)

        #stan czytany dopiero po założeniu locka
        if product.stock < quantity:
            raise InsufficientStockError(product.id, product.name, quantity, product.stock)

        product.stock -= quantity
        self.products.save_product(product)

        logger.debug("Stock reserved", product_id=product_id, quantity=quantity, stock=product.stock)
        return product

    def release(self, product_id: int, quantity: int) -> ProductModel:
        product = self.products.get_product_for_update(product_id)

        if product is None:
            raise StockIntegrityError(product_id)

        product.stock += quantity
        self.products.save_product(product)

        logger.debug("Stock released", product_id=product_id, quantity=quantity, stock=product.stock)
        return product

    def reserve_all(self, lines: Iterable[Tuple[int, int]]) -> None:
        """
        Rezerwuje (product_id, quantity) dla całego zamówienia.
        Locki zawsze w kolejności rosnącego product_id - dwa zamówienia
        z tymi samymi produktami nie zakleszczą się.
        """
        totals: Dict[int, int] = {}
        for product_id, quantity in lines:
            totals[product_id] = totals.get(product_id, 0) + quantity

        for product_id in sorted(totals):
            self.reserve(product_id, totals[product_id])

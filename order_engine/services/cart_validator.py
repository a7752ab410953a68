# order_engine/services/cart_validator.py
from typing import List

from sqlalchemy.orm import Session

from order_engine.data.models.cart_item import CartItemModel
from order_engine.data.models.product import ProductStatus
from order_engine.domain.errors import (
    EmptyCartError,
    InsufficientStockError,
    ProductNotFoundError,
    ProductUnavailableError,
)
from order_engine.repos.cart_repo import CartRepo


class CartValidator:
    """
    Sprawdza czy każda pozycja koszyka da się kupić.
    Tylko odczyt - właściwa kontrola stanu jest pod lockiem w StockLedger.
    """

    def __init__(self, db: Session, carts: CartRepo | None = None):
        self.carts = carts or CartRepo(db)

    def validate_cart(self, buyer_id: int, for_update: bool = False) -> List[CartItemModel]:
        cart = self.carts.get_cart_with_lines(buyer_id, for_update=for_update)

        if not cart or not cart.items:
            raise EmptyCartError(buyer_id)

        #pierwszy błąd wygrywa
        for line in cart.items:
            self.validate_line(line)

        return list(cart.items)

    @staticmethod
    def validate_line(line: CartItemModel) -> None:
        product = line.product

        # soft delete i status to dwa osobne warunki
        if product is None or product.is_deleted:
            raise ProductNotFoundError(line.product_id)

        if product.status != ProductStatus.ACTIVE:
            raise ProductUnavailableError(product.id, product.name, product.status)

        if product.stock < line.quantity:
            raise InsufficientStockError(product.id, product.name, line.quantity, product.stock)

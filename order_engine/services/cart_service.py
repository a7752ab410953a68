from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from order_engine.data.models.cart_item import CartItemModel
from order_engine.data.models.product import ProductModel, ProductStatus
from order_engine.domain.errors import (
    CartItemNotFoundError,
    InsufficientStockError,
    InvalidQuantityError,
    ProductNotFoundError,
    ProductUnavailableError,
)
from order_engine.repos.cart_repo import CartRepo
from order_engine.repos.product_repo import ProductRepo
from order_engine.utils.logging import get_logger
from order_engine.utils.settings import LOW_STOCK_THRESHOLD

logger = get_logger(__name__)


class CartService:
    """
    Use case'y koszyka:
    commands (add, update, remove, clear) modyfikują stan i robią commit
    query (get) tylko odczyt
    Cena pozycji to snapshot z momentu dodania - checkout jej nie przelicza.
    """

    def __init__(self, db: Session, products: ProductRepo | None = None, carts: CartRepo | None = None):
        self.repo = carts or CartRepo(db)
        self.products = products or ProductRepo(db)

    #query - odczyt
    def get_cart(self, buyer_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_with_lines(buyer_id)

        if not cart:
            return {"cart_id": None, "items": [], "total_items": 0, "total_amount": Decimal("0.00")}

        items = [self._format_line(i) for i in cart.items]
        total = sum((i.price * i.quantity for i in cart.items), Decimal("0.00"))

        return {
            "cart_id": cart.id,
            "items": items,
            "total_items": sum(i.quantity for i in cart.items),
            "total_amount": total,
        }

    #commands
    def add_item(self, buyer_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise InvalidQuantityError(quantity)

        try:
            product = self._get_purchasable_product(product_id)

            #koszyk tworzony leniwie, zablokowany na czas zmiany
            cart = self.repo.get_or_create_cart(buyer_id, for_update=True)
            existing_item = self.repo.get_cart_item(cart.id, product_id)

            warnings: List[Dict[str, Any]] = []
            already = existing_item.quantity if existing_item else 0
            final_quantity = quantity

            # nie więcej niż jest na stanie - przycinamy zamiast odrzucać
            if already + quantity > product.stock:
                final_quantity = product.stock - already
                if final_quantity <= 0:
                    raise InsufficientStockError(product.id, product.name, already + quantity, product.stock)

                warnings.append(
                    {
                        "type": "STOCK_ADJUSTED",
                        "message": f"Niewystarczający stan, dodano maksymalnie {final_quantity} szt.",
                        "original_quantity": quantity,
                        "adjusted_quantity": final_quantity,
                    }
                )

            if existing_item:
                logger.info(
                    "Increase cart line quantity",
                    cart_id=cart.id,
                    product_id=product_id,
                    quantity=already + final_quantity,
                )
                existing_item.quantity += final_quantity
                # snapshot zostaje, tylko ostrzegamy o zmianie ceny
                if existing_item.price != product.price:
                    warnings.append(
                        {
                            "type": "PRICE_CHANGED",
                            "message": "Cena produktu zmieniła się od dodania do koszyka",
                            "original_price": existing_item.price,
                            "current_price": product.price,
                        }
                    )
                item = self.repo.add_cart_item(existing_item)
            else:
                logger.info("Add cart line", cart_id=cart.id, product_id=product_id, quantity=final_quantity)
                item = self.repo.add_cart_item(
                    CartItemModel(
                        cart_id=cart.id,
                        product_id=product_id,
                        quantity=final_quantity,
                        price=product.price,
                    )
                )

            if product.stock <= LOW_STOCK_THRESHOLD:
                warnings.append(
                    {
                        "type": "LOW_STOCK",
                        "message": f"Niski stan produktu, zostało {product.stock} szt.",
                    }
                )

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        return {"item": self._format_line(item), "warnings": warnings}

    def update_item_quantity(self, buyer_id: int, item_id: int, quantity: int) -> Dict[str, Any] | None:
        """quantity == 0 usuwa pozycję i zwraca None."""
        if quantity < 0:
            raise InvalidQuantityError(quantity)

        try:
            item = self._get_locked_line(buyer_id, item_id)

            if quantity == 0:
                self.repo.delete_cart_item(item)
                self.repo.commit()
                logger.info("Cart line removed", item_id=item_id, buyer_id=buyer_id)
                return None

            product = self._get_purchasable_product(item.product_id)
            if quantity > product.stock:
                raise InsufficientStockError(product.id, product.name, quantity, product.stock)

            item.quantity = quantity
            self.repo.add_cart_item(item)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        return self._format_line(item)

    def remove_item(self, buyer_id: int, item_id: int) -> None:
        try:
            item = self._get_locked_line(buyer_id, item_id)
            self.repo.delete_cart_item(item)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
        logger.info("Cart line removed", item_id=item_id, buyer_id=buyer_id)

    def clear_cart(self, buyer_id: int) -> None:
        try:
            cart = self.repo.lock_cart(buyer_id)
            if not cart:
                return

            removed = self.repo.delete_cart_lines(cart.id)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
        logger.info("Cart cleared", cart_id=cart.id, removed=removed)

    def _get_locked_line(self, buyer_id: int, item_id: int) -> CartItemModel:
        #najpierw wiersz koszyka, tak samo jak checkout, potem pozycja
        if self.repo.lock_cart(buyer_id) is None:
            raise CartItemNotFoundError(item_id)

        item = self.repo.get_buyer_cart_item(buyer_id, item_id)
        if not item:
            raise CartItemNotFoundError(item_id)
        return item

    def _get_purchasable_product(self, product_id: int) -> ProductModel:
        product = self.products.get_product(product_id)

        if product is None or product.is_deleted:
            raise ProductNotFoundError(product_id)

        if product.status != ProductStatus.ACTIVE:
            raise ProductUnavailableError(product.id, product.name, product.status)

        return product

    @staticmethod
    def _format_line(item: CartItemModel) -> Dict[str, Any]:
        return {
            "id": item.id,
            "product_id": item.product_id,
            "product_name": item.product.name,
            "quantity": item.quantity,
            "price": item.price,
            "current_price": item.product.price,
            "stock": item.product.stock,
            "status": item.product.status,
        }

# order_engine/services/order_service.py
from enum import Enum
from typing import Any, Dict, List, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from order_engine.data.models.order import OrderModel, OrderStatus
from order_engine.data.models.order_item import OrderItemModel
from order_engine.domain.errors import (
    BusinessError,
    InvalidOrderStatusError,
    OrderNotFoundError,
    OrderNumberCollision,
    OrderNumberExhaustedError,
    OrderSystemError,
    StockIntegrityError,
)
from order_engine.domain.schemas import ShippingAddress
from order_engine.repos.cart_repo import CartRepo
from order_engine.repos.order_repo import OrderRepo
from order_engine.services.cart_validator import CartValidator
from order_engine.services.order_assembler import OrderAssembler, OrderDraft, normalize_shipping_address
from order_engine.services.stock_ledger import StockLedger
from order_engine.utils.logging import get_logger
from order_engine.utils.retry import order_number_retry
from order_engine.utils.settings import ORDER_NUMBER_MAX_ATTEMPTS

logger = get_logger(__name__)


class OrderTxState(str, Enum):
    VALIDATING = "validating"
    INSERTING = "inserting"
    RESERVING = "reserving"
    CLEARING_CART = "clearing_cart"
    COMMITTED = "committed"


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień.

    Komendy (create_order_from_cart, cancel_order) wykonują się w jednej
    transakcji sesji - wszystko albo nic. Zapytania (list_orders, get_order)
    tylko czytają.
    """

    def __init__(
        self,
        db: Session,
        validator: CartValidator | None = None,
        assembler: OrderAssembler | None = None,
        ledger: StockLedger | None = None,
        max_attempts: int = ORDER_NUMBER_MAX_ATTEMPTS,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.carts = CartRepo(db)
        self.validator = validator or CartValidator(db, self.carts)
        self.assembler = assembler or OrderAssembler()
        self.ledger = ledger or StockLedger(db)
        self.max_attempts = max_attempts
        self._place_order = order_number_retry(max_attempts)(self._place_order_once)

    #commands
    def create_order_from_cart(
        self,
        buyer_id: int,
        shipping_address: ShippingAddress | Mapping[str, Any],
        notes: str | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: Tworzenie zamówienia z koszyka.

        1. Walidacja adresu i wstępna walidacja koszyka
        2. Transakcja: ponowna walidacja, nagłówek, pozycje, rezerwacja stanu, czyszczenie koszyka
        3. Kolizja numeru zamówienia -> cała transakcja od nowa, max `max_attempts` razy
        """
        address = normalize_shipping_address(shipping_address)

        try:
            self.validator.validate_cart(buyer_id)
            order = self._place_order(buyer_id, address, notes)
        except BusinessError as e:
            self.db.rollback()
            logger.info("Order rejected", buyer_id=buyer_id, code=e.code.value)
            raise
        except OrderNumberCollision as e:
            logger.error("Order number attempts exhausted", buyer_id=buyer_id, attempts=self.max_attempts)
            raise OrderNumberExhaustedError(self.max_attempts) from e
        except OrderSystemError:
            self.db.rollback()
            logger.exception("Order creation system error", buyer_id=buyer_id)
            raise
        except Exception as e:
            self.db.rollback()
            logger.exception("Order creation system error", buyer_id=buyer_id)
            raise OrderSystemError("Nie udało się utworzyć zamówienia z powodu błędu systemu") from e

        logger.info(
            "Order created",
            order_id=order.id,
            order_number=order.order_number,
            buyer_id=buyer_id,
            total_amount=str(order.total_amount),
        )
        return self._format_order(order)

    def cancel_order(self, order_id: int, buyer_id: int) -> Dict[str, Any]:
        """
        Use Case: Anulowanie zamówienia oczekującego + zwrot stanu.
        Status sprawdzany pod lockiem wiersza zamówienia.
        """
        try:
            order = self.repo.get_order_for_buyer(order_id, buyer_id, for_update=True)

            # obce zamówienie = nie istnieje
            if not order:
                raise OrderNotFoundError(order_id)

            if order.status != OrderStatus.PENDING:
                raise InvalidOrderStatusError(order_id, order.status)

            self._restore_stock(order)

            order.status = OrderStatus.CANCELLED.value
            self.db.flush()
            self.db.commit()
        except BusinessError:
            self.db.rollback()
            raise
        except OrderSystemError:
            self.db.rollback()
            logger.exception("Cancel order system error", order_id=order_id, buyer_id=buyer_id)
            raise
        except Exception as e:
            self.db.rollback()
            logger.exception("Cancel order system error", order_id=order_id, buyer_id=buyer_id)
            raise OrderSystemError("Nie udało się anulować zamówienia z powodu błędu systemu") from e

        logger.info("Order cancelled", order_id=order.id, order_number=order.order_number)
        return self._format_order(order)

    #query
    def list_orders(self, buyer_id: int) -> List[Dict[str, Any]]:
        try:
            orders = self.repo.list_orders_for_buyer(buyer_id)
            return [self._format_order(o) for o in orders]
        except Exception as e:
            self.db.rollback()
            logger.exception("List orders error", buyer_id=buyer_id)
            raise OrderSystemError("Nie udało się pobrać zamówień") from e

    def get_order(self, order_id: int, buyer_id: int) -> Dict[str, Any]:
        try:
            order = self.repo.get_order_for_buyer(order_id, buyer_id)
        except Exception as e:
            self.db.rollback()
            logger.exception("Get order error", order_id=order_id, buyer_id=buyer_id)
            raise OrderSystemError("Nie udało się pobrać zamówienia") from e

        if not order:
            raise OrderNotFoundError(order_id)

        return self._format_order(order)

    #transakcja
    def _place_order_once(self, buyer_id: int, address: Dict[str, str], notes: str | None) -> OrderModel:
        state = OrderTxState.VALIDATING
        try:
            #ponowna walidacja - ta jest wiążąca, koszyk zablokowany do commita
            lines = self.validator.validate_cart(buyer_id, for_update=True)
            draft = self.assembler.assemble(buyer_id, address, notes, lines)

            state = OrderTxState.INSERTING
            order = self._insert_order(draft)
            self._insert_order_items(order, draft)

            state = OrderTxState.RESERVING
            self.ledger.reserve_all((item.product_id, item.quantity) for item in draft.items)

            state = OrderTxState.CLEARING_CART
            self.carts.delete_cart_lines(lines[0].cart_id)

            created = self.repo.get_order_with_items(order.id)
            if created is None:
                raise OrderSystemError("Nie udało się odczytać utworzonego zamówienia")

            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.info("Order transaction rolled back", buyer_id=buyer_id, state=state.value)
            raise

        logger.debug("Order transaction state", order_id=created.id, state=OrderTxState.COMMITTED.value)
        return created

    def _insert_order(self, draft: OrderDraft) -> OrderModel:
        order = OrderModel(
            order_number=draft.order_number,
            buyer_id=draft.buyer_id,
            status=draft.status,
            total_amount=draft.total_amount,
            shipping_address=draft.shipping_address,
            notes=draft.notes,
        )
        try:
            return self.repo.add_order(order)
        except IntegrityError as e:
            if "order_number" in str(e.orig):
                logger.warning("Order number collision", order_number=draft.order_number)
                raise OrderNumberCollision(draft.order_number) from e
            raise

    def _insert_order_items(self, order: OrderModel, draft: OrderDraft) -> None:
        self.repo.add_order_items(
            [
                OrderItemModel(
                    order_id=order.id,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    product_price=item.product_price,
                    quantity=item.quantity,
                    total_price=item.total_price,
                )
                for item in draft.items
            ]
        )

    def _restore_stock(self, order: OrderModel) -> None:
        for item in sorted(order.items, key=lambda i: i.product_id or 0):
            #produkt odłączony (SET NULL) - pomijamy, anulowanie musi przejść
            if item.product_id is None:
                logger.warning("Stock restore skipped, product reference missing", order_id=order.id, item_id=item.id)
                continue
            try:
                self.ledger.release(item.product_id, item.quantity)
            except StockIntegrityError:
                logger.warning(
                    "Stock restore skipped, product row missing",
                    order_id=order.id,
                    product_id=item.product_id,
                )

    @staticmethod
    def _format_order(order: OrderModel) -> Dict[str, Any]:
        return {
            "id": order.id,
            "order_number": order.order_number,
            "status": order.status,
            "total_amount": order.total_amount,
            "shipping_address": order.shipping_address,
            "notes": order.notes,
            "items": [
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "product_price": item.product_price,
                    "quantity": item.quantity,
                    "total_price": item.total_price,
                }
                for item in order.items
            ],
            "created_at": order.created_at,
            "updated_at": order.updated_at,
        }

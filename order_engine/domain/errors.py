# order_engine/domain/errors.py
from enum import Enum
from typing import Any, Dict


class ErrorCode(str, Enum):
    EMPTY_CART = "EMPTY_CART"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    PRODUCT_UNAVAILABLE = "PRODUCT_UNAVAILABLE"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    INVALID_SHIPPING_ADDRESS = "INVALID_SHIPPING_ADDRESS"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    INVALID_ORDER_STATUS = "INVALID_ORDER_STATUS"
    CART_ITEM_NOT_FOUND = "CART_ITEM_NOT_FOUND"
    INVALID_QUANTITY = "INVALID_QUANTITY"


class BusinessError(Exception):
    """
    Naruszenie reguły biznesowej, widoczne dla użytkownika.
    Stabilny `code` + kontekst (product_id, requested/available itp.)
    """

    code: ErrorCode

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "message": self.message, **self.context}


class EmptyCartError(BusinessError):
    code = ErrorCode.EMPTY_CART

    def __init__(self, buyer_id: int):
        super().__init__("Koszyk jest pusty, nie można utworzyć zamówienia", buyer_id=buyer_id)


class ProductNotFoundError(BusinessError):
    code = ErrorCode.PRODUCT_NOT_FOUND

    def __init__(self, product_id: int):
        super().__init__(f"Produkt {product_id} nie istnieje lub został usunięty", product_id=product_id)


class ProductUnavailableError(BusinessError):
    code = ErrorCode.PRODUCT_UNAVAILABLE

    def __init__(self, product_id: int, name: str, status: str):
        super().__init__(
            f"Produkt {name} nie jest obecnie dostępny",
            product_id=product_id,
            status=status,
        )


class InsufficientStockError(BusinessError):
    code = ErrorCode.INSUFFICIENT_STOCK

    def __init__(self, product_id: int, name: str, requested: int, available: int):
        super().__init__(
            f"Niewystarczający stan produktu {name}. Wymagane: {requested}, dostępne: {available}",
            product_id=product_id,
            requested=requested,
            available=available,
        )


class InvalidShippingAddressError(BusinessError):
    code = ErrorCode.INVALID_SHIPPING_ADDRESS

    def __init__(self, field: str, reason: str):
        super().__init__(f"Nieprawidłowy adres dostawy ({field}): {reason}", field=field)


class OrderNotFoundError(BusinessError):
    code = ErrorCode.ORDER_NOT_FOUND

    def __init__(self, order_id: int):
        super().__init__("Zamówienie nie istnieje", order_id=order_id)


class InvalidOrderStatusError(BusinessError):
    code = ErrorCode.INVALID_ORDER_STATUS

    def __init__(self, order_id: int, status: str):
        super().__init__(
            "Można anulować tylko zamówienia oczekujące",
            order_id=order_id,
            status=status,
        )


class CartItemNotFoundError(BusinessError):
    code = ErrorCode.CART_ITEM_NOT_FOUND

    def __init__(self, item_id: int):
        super().__init__("Pozycja koszyka nie istnieje", item_id=item_id)


class InvalidQuantityError(BusinessError):
    code = ErrorCode.INVALID_QUANTITY

    def __init__(self, quantity: int):
        super().__init__("Ilość musi być większa niż 0", quantity=quantity)


class OrderSystemError(Exception):
    """Błąd infrastruktury, bez szczegółów dla klienta."""

    def __init__(self, message: str = "Operacja nie powiodła się z powodu błędu systemu"):
        super().__init__(message)


class OrderNumberExhaustedError(OrderSystemError):
    def __init__(self, attempts: int):
        super().__init__(f"Nie udało się wygenerować unikalnego numeru zamówienia ({attempts} prób)")
        self.attempts = attempts


class StockIntegrityError(OrderSystemError):
    #wiersz produktu zniknął, a nie powinien (produkty nie są usuwane fizycznie)
    def __init__(self, product_id: int):
        super().__init__(f"Brak wiersza produktu {product_id} w magazynie")
        self.product_id = product_id


class OrderNumberCollision(Exception):
    """Kolizja unique na orders.order_number - sygnal do ponowienia transakcji."""

    def __init__(self, order_number: str):
        super().__init__(order_number)
        self.order_number = order_number

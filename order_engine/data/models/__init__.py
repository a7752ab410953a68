#import wszystkich modeli żeby SQLAlchemy je zarejestrował w base metadata

from order_engine.data.models.product import ProductModel, ProductStatus
from order_engine.data.models.cart import CartModel
from order_engine.data.models.cart_item import CartItemModel
from order_engine.data.models.order import OrderModel, OrderStatus
from order_engine.data.models.order_item import OrderItemModel

__all__ = [
    "ProductModel",
    "ProductStatus",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderStatus",
    "OrderItemModel",
]

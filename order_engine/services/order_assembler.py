# order_engine/services/order_assembler.py
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Mapping, Tuple

from pydantic import ValidationError

from order_engine.data.models.cart_item import CartItemModel
from order_engine.data.models.order import OrderStatus
from order_engine.domain.errors import InvalidShippingAddressError
from order_engine.domain.schemas import ShippingAddress

CENTS = Decimal("0.01")
_BASE36 = string.digits + string.ascii_uppercase


def generate_order_number(now: datetime | None = None) -> str:
    """ORD-<YYYYMMDD UTC>-<6 znaków base36>. Unikalność gwarantuje dopiero constraint w bazie."""
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"ORD-{now.astimezone(timezone.utc):%Y%m%d}-{suffix}"


def normalize_shipping_address(raw: ShippingAddress | Mapping[str, Any]) -> Dict[str, str]:
    try:
        address = raw if isinstance(raw, ShippingAddress) else ShippingAddress.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0]
        field_name = str(first["loc"][0]) if first["loc"] else "shipping_address"
        raise InvalidShippingAddressError(field_name, first["msg"]) from e
    return address.model_dump()


@dataclass(frozen=True)
class OrderItemDraft:
    product_id: int
    product_name: str
    product_price: Decimal
    quantity: int

    @property
    def total_price(self) -> Decimal:
        return (self.product_price * self.quantity).quantize(CENTS)


@dataclass(frozen=True)
class OrderDraft:
    order_number: str
    buyer_id: int
    total_amount: Decimal
    shipping_address: Dict[str, str]
    notes: str | None
    items: Tuple[OrderItemDraft, ...]
    status: str = field(default=OrderStatus.PENDING.value)


class OrderAssembler:
    """Buduje nagłówek + snapshoty pozycji, nic nie zapisuje."""

    def __init__(self, number_factory: Callable[[], str] = generate_order_number):
        self.number_factory = number_factory

    @staticmethod
    def calculate_total(lines: Iterable[CartItemModel]) -> Decimal:
        #cena z koszyka (snapshot), nie aktualna cena produktu
        total = sum((Decimal(line.price) * line.quantity for line in lines), Decimal("0.00"))
        return total.quantize(CENTS)

    def assemble(
        self,
        buyer_id: int,
        shipping_address: ShippingAddress | Mapping[str, Any],
        notes: str | None,
        lines: Iterable[CartItemModel],
    ) -> OrderDraft:
        lines = list(lines)
        address = normalize_shipping_address(shipping_address)

        items = tuple(
            OrderItemDraft(
                product_id=line.product_id,
                product_name=line.product.name,
                product_price=Decimal(line.price).quantize(CENTS),
                quantity=line.quantity,
            )
            for line in lines
        )

        return OrderDraft(
            order_number=self.number_factory(),
            buyer_id=buyer_id,
            total_amount=self.calculate_total(lines),
            shipping_address=address,
            notes=(notes or "").strip() or None,
            items=items,
        )

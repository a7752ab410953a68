# order_engine/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from order_engine.api.errors import to_http_error
from order_engine.data.database import get_db
from order_engine.domain.errors import BusinessError, OrderSystemError
from order_engine.domain.schemas import OrderCreate, OrderOut
from order_engine.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    buyer_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    """
    Tworzy zamówienie z koszyka kupującego i czyści koszyk.
    """
    svc = get_service(db)
    try:
        return svc.create_order_from_cart(buyer_id, payload.shipping_address, payload.notes)
    except (BusinessError, OrderSystemError) as e:
        raise to_http_error(e)


@router.get("/", response_model=List[OrderOut])
def list_orders(
    buyer_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.list_orders(buyer_id)
    except OrderSystemError as e:
        raise to_http_error(e)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    buyer_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.get_order(order_id, buyer_id)
    except (BusinessError, OrderSystemError) as e:
        raise to_http_error(e)


@router.patch("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    buyer_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    """
    Anuluje zamówienie oczekujące i zwraca stan magazynowy.
    """
    svc = get_service(db)
    try:
        return svc.cancel_order(order_id, buyer_id)
    except (BusinessError, OrderSystemError) as e:
        raise to_http_error(e)

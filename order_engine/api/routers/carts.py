#order_engine/api/routers/carts.py
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from order_engine.api.errors import to_http_error
from order_engine.data.database import get_db
from order_engine.domain.errors import BusinessError
from order_engine.domain.schemas import AddToCartOut, CartItemIn, CartItemUpdate, CartLineOut, CartOut
from order_engine.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("/", response_model=CartOut)
def get_cart(
    buyer_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    return get_service(db).get_cart(buyer_id)


@router.post("/items", response_model=AddToCartOut, status_code=201)
def add_item(
    payload: CartItemIn,
    buyer_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.add_item(buyer_id, payload.product_id, payload.quantity)
    except BusinessError as e:
        raise to_http_error(e)


@router.patch("/items/{item_id}", response_model=CartLineOut | None)
def update_item(
    item_id: int,
    payload: CartItemUpdate,
    buyer_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.update_item_quantity(buyer_id, item_id, payload.quantity)
    except BusinessError as e:
        raise to_http_error(e)


@router.delete("/items/{item_id}", status_code=204)
def remove_item(
    item_id: int,
    buyer_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        svc.remove_item(buyer_id, item_id)
    except BusinessError as e:
        raise to_http_error(e)
    return Response(status_code=204)


@router.delete("/", status_code=204)
def clear_cart(
    buyer_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
):
    get_service(db).clear_cart(buyer_id)
    return Response(status_code=204)

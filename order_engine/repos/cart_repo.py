# order_engine/repos/cart_repo.py
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from order_engine.data.models.cart import CartModel
from order_engine.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_with_lines(self, buyer_id: int, for_update: bool = False) -> CartModel | None:
        #koszyk + pozycje + aktualny stan produktów
        stmt = (
            select(CartModel)
            .where(CartModel.buyer_id == buyer_id, CartModel.is_deleted.is_(False))
            .options(selectinload(CartModel.items).selectinload(CartItemModel.product))
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def lock_cart(self, buyer_id: int) -> CartModel | None:
        #blokada wiersza koszyka, edycje czekają na trwający checkout
        return self.db.execute(
            select(CartModel)
            .where(CartModel.buyer_id == buyer_id, CartModel.is_deleted.is_(False))
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_or_create_cart(self, buyer_id: int, for_update: bool = False) -> CartModel:
        cart = self.get_cart_with_lines(buyer_id, for_update=for_update)
        if cart:
            return cart

        try:
            cart = CartModel(buyer_id=buyer_id)
            self.db.add(cart)
            self.db.flush()
        except IntegrityError:
            #równoległe pierwsze dodanie utworzyło już koszyk (uq_carts_active_buyer)
            self.db.rollback()
            cart = self.get_cart_with_lines(buyer_id, for_update=for_update)
            if cart is None:
                raise
        return cart

    def get_cart_item(self, cart_id: int, product_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def get_buyer_cart_item(self, buyer_id: int, item_id: int) -> CartItemModel | None:
        #pozycja tylko jeśli należy do koszyka tego kupującego
        return self.db.execute(
            select(CartItemModel)
            .join(CartModel, CartItemModel.cart_id == CartModel.id)
            .where(
                CartItemModel.id == item_id,
                CartModel.buyer_id == buyer_id,
                CartModel.is_deleted.is_(False),
            )
            .options(selectinload(CartItemModel.product))
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def delete_cart_lines(self, cart_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id == cart_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

import os

# testy jednostkowe zawsze na sqlite w pamięci
os.environ["DATABASE_URL"] = "sqlite://"

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from order_engine.data.database import Base, SessionLocal, engine, init_db
from order_engine.data.models import (
    CartItemModel,
    CartModel,
    ProductModel,
    ProductStatus,
)

ADDRESS = {"name": "Jan Kowalski", "phone": "0912345678", "address": "ul. Długa 1, Kraków"}


@pytest.fixture(autouse=True)
def _schema():
    init_db(engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def address():
    return dict(ADDRESS)


@pytest.fixture()
def make_product(db):
    def _make(
        name="Keyboard",
        price="100.00",
        stock=5,
        status=ProductStatus.ACTIVE.value,
        is_deleted=False,
        seller_id=1,
    ):
        product = ProductModel(
            seller_id=seller_id,
            name=name,
            price=Decimal(price),
            stock=stock,
            status=status,
            is_deleted=is_deleted,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture()
def add_to_cart(db):
    """Pozycja koszyka wprost w bazie; price domyślnie = aktualna cena produktu."""

    def _add(buyer_id, product, quantity, price=None):
        cart = db.execute(
            select(CartModel).where(CartModel.buyer_id == buyer_id, CartModel.is_deleted.is_(False))
        ).scalar_one_or_none()
        if cart is None:
            cart = CartModel(buyer_id=buyer_id)
            db.add(cart)
            db.flush()

        line = CartItemModel(
            cart_id=cart.id,
            product_id=product.id,
            quantity=quantity,
            price=Decimal(price) if price is not None else product.price,
        )
        db.add(line)
        db.commit()
        return line

    return _add


@pytest.fixture()
def stock_of(db):
    def _stock(product_id):
        return db.execute(select(ProductModel.stock).where(ProductModel.id == product_id)).scalar_one()

    return _stock


@pytest.fixture()
def cart_lines(db):
    def _lines(buyer_id):
        rows = db.execute(
            select(CartItemModel.product_id, CartItemModel.quantity, CartItemModel.price)
            .join(CartModel, CartItemModel.cart_id == CartModel.id)
            .where(CartModel.buyer_id == buyer_id)
            .order_by(CartItemModel.id)
        ).all()
        return [tuple(r) for r in rows]

    return _lines


@pytest.fixture()
def count_rows(db):
    def _count(model):
        return db.execute(select(func.count()).select_from(model)).scalar_one()

    return _count

# order_engine/repos/product_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from order_engine.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_product_for_update(self, product_id: int) -> ProductModel | None:
        #SELECT ... FOR UPDATE, blokada wiersza do końca transakcji
        #populate_existing - nadpisz obiekt z identity map świeżym odczytem spod locka
        stmt = (
            select(ProductModel)
            .where(ProductModel.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def save_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

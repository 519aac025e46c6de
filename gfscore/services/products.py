"""Product reads. Writes go through services/votes.py."""
from __future__ import annotations

from sqlalchemy.orm import Session

from gfscore.core.errors import ProductNotFoundError
from gfscore.models.product import Product


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def list_products(
    db: Session,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[Product]]:
    """Return (total, page) of products, best-rated for safety first."""
    q = db.query(Product)
    total = q.count()
    items = (
        q.order_by(Product.average_safety.desc(), Product.id)
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items

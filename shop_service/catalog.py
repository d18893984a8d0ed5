# shop_service/catalog.py

"""
Read side of the catalog: products joined to their category name, with
image URLs collected into a list per product.
"""
import logging
import re
from collections import defaultdict
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import NotFoundError, PersistenceError, ValidationError
from .models import MAX_ROW_ID, Category, Product, ProductImage

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")

_PRODUCT_COLUMNS = (
    "id",
    "name",
    "slug",
    "short_description",
    "description",
    "stock_quantity",
    "category_id",
    "subcategory_id",
    "sub_subcategory_id",
    "attribute",
    "created_at",
)


def parse_product_id(raw) -> int:
    """
    Parse a path identifier. Anything but plain ASCII digits is a
    ValidationError; a number no row could carry is a NotFoundError.
    """
    text = str(raw).strip() if raw is not None else ""
    if not _DIGITS.fullmatch(text):
        raise ValidationError("Invalid product ID")
    product_id = int(text)
    if not 1 <= product_id <= MAX_ROW_ID:
        raise NotFoundError("Product not found")
    return product_id


def _images_by_product(db: Session, product_ids: List[int]) -> Dict[int, List[str]]:
    images = defaultdict(list)
    if not product_ids:
        return images
    rows = (
        db.query(ProductImage.product_id, ProductImage.image_url)
        .filter(ProductImage.product_id.in_(product_ids))
        .order_by(ProductImage.id)
        .all()
    )
    for row in rows:
        images[row.product_id].append(row.image_url)
    return images


def _to_view(product: Product, category_name, images: List[str]) -> dict:
    view = {column: getattr(product, column) for column in _PRODUCT_COLUMNS}
    view["price"] = float(product.price) if product.price is not None else 0.0
    view["category_name"] = category_name
    view["images"] = images
    return view


def _query_products(db: Session):
    return db.query(Product, Category.name.label("category_name")).outerjoin(
        Category, Product.category_id == Category.id
    )


def list_products(db: Session) -> List[dict]:
    try:
        rows = _query_products(db).order_by(Product.id).all()
        images = _images_by_product(db, [row.Product.id for row in rows])
    except SQLAlchemyError as e:
        logger.error(f"Error fetching products: {e}", exc_info=True)
        raise PersistenceError.from_exception("Error fetching products", e) from e

    logger.info(f"Retrieved {len(rows)} products.")
    return [_to_view(row.Product, row.category_name, images.get(row.Product.id, [])) for row in rows]


def get_product(db: Session, raw_product_id) -> dict:
    """
    Fetch one denormalized product.
    Raises ValidationError for a non-integer id and NotFoundError when absent.
    """
    product_id = parse_product_id(raw_product_id)
    try:
        row = _query_products(db).filter(Product.id == product_id).first()
        images = _images_by_product(db, [product_id]) if row is not None else {}
    except SQLAlchemyError as e:
        logger.error(f"Error fetching product {product_id}: {e}", exc_info=True)
        raise PersistenceError.from_exception("Error fetching product", e) from e

    if row is None:
        logger.warning(f"Product with ID: {product_id} not found.")
        raise NotFoundError("Product not found")
    return _to_view(row.Product, row.category_name, images.get(product_id, []))

# shop_service/product_writer.py

"""
Write side of the catalog.

Every function here runs as a single transaction on the session it is given:
either all rows (product, attribute links, image links) are committed, or the
session is rolled back and PersistenceError is raised.
"""
import json
import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from .attributes import RawSelection, parse_selected_attributes, resolve_attribute_ids
from .errors import NotFoundError, PersistenceError
from .models import Product, ProductAttribute, ProductImage
from .schemas import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


def _raw_attribute_column(raw: RawSelection, values: List[str]) -> Optional[str]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw or None
    return json.dumps(values) if values else None


def _link_attributes(db: Session, product_id: int, values: List[str]) -> int:
    attribute_ids = resolve_attribute_ids(db, values)
    if attribute_ids:
        db.add_all(
            [ProductAttribute(product_id=product_id, attribute_id=attribute_id) for attribute_id in attribute_ids]
        )
    return len(attribute_ids)


def _link_images(db: Session, product_id: int, image_paths: Sequence[str]) -> int:
    if image_paths:
        db.add_all([ProductImage(product_id=product_id, image_url=path) for path in image_paths])
    return len(image_paths)


def create_product(
    db: Session,
    product: ProductCreate,
    selected_attributes: RawSelection = None,
    image_paths: Sequence[str] = (),
) -> int:
    """
    Insert a product together with its attribute and image links.

    The attribute selection is parsed before anything touches the database,
    so a malformed selection raises ValidationError with no transaction open.
    Returns the new product id.
    """
    values = parse_selected_attributes(selected_attributes)
    image_paths = list(image_paths or [])

    try:
        db_product = Product(
            **product.model_dump(),
            attribute=_raw_attribute_column(selected_attributes, values),
        )
        db.add(db_product)
        db.flush()  # assigns db_product.id
        product_id = db_product.id

        linked = _link_attributes(db, product_id, values)
        _link_images(db, product_id, image_paths)
        db.flush()
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating product '{product.name}': {e}", exc_info=True)
        raise PersistenceError.from_exception("Error adding product", e) from e

    logger.info(
        f"Product '{product.name}' (ID: {product_id}) created with "
        f"{linked} attribute(s) and {len(image_paths)} image(s)."
    )
    return product_id


def update_product(
    db: Session,
    product_id: int,
    changes: ProductUpdate,
    selected_attributes: RawSelection = None,
    image_paths: Sequence[str] = (),
) -> int:
    """
    Apply the supplied fields to an existing product.

    When an attribute selection is given it replaces the product's current
    attribute links; uploaded images are appended to the existing ones.
    """
    values = parse_selected_attributes(selected_attributes)
    image_paths = list(image_paths or [])

    db_product = db.query(Product).filter(Product.id == product_id).first()
    if db_product is None:
        logger.warning(f"Product with ID: {product_id} not found for update.")
        raise NotFoundError("Product not found")

    try:
        for field, value in changes.model_dump(exclude_unset=True).items():
            setattr(db_product, field, value)

        if selected_attributes is not None:
            db.query(ProductAttribute).filter(ProductAttribute.product_id == product_id).delete(
                synchronize_session=False
            )
            db_product.attribute = _raw_attribute_column(selected_attributes, values)
            _link_attributes(db, product_id, values)

        _link_images(db, product_id, image_paths)
        db.flush()
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error updating product {product_id}: {e}", exc_info=True)
        raise PersistenceError.from_exception("Error updating product", e) from e

    logger.info(f"Product (ID: {product_id}) updated successfully.")
    return product_id


def delete_product(db: Session, product_id: int) -> None:
    """Remove a product and its attribute and image links."""
    exists = db.query(Product.id).filter(Product.id == product_id).first()
    if exists is None:
        logger.warning(f"Product with ID: {product_id} not found for deletion.")
        raise NotFoundError("Product not found")

    try:
        db.query(ProductAttribute).filter(ProductAttribute.product_id == product_id).delete(synchronize_session=False)
        db.query(ProductImage).filter(ProductImage.product_id == product_id).delete(synchronize_session=False)
        db.query(Product).filter(Product.id == product_id).delete(synchronize_session=False)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting product {product_id}: {e}", exc_info=True)
        raise PersistenceError.from_exception("Error deleting product", e) from e

    logger.info(f"Product (ID: {product_id}) deleted successfully.")

# shop_service/attributes.py

"""
Attribute selection handling.

`parse_selected_attributes` turns the `selectedAttributes` form field into a
list of trimmed strings. `resolve_attribute_ids` maps those strings to rows of
the `attributes` table, dropping any value that has no matching row.
"""
import json
import logging
from typing import List, Optional, Sequence, Union

from sqlalchemy.orm import Session

from .errors import ValidationError
from .models import Attribute

logger = logging.getLogger(__name__)

RawSelection = Optional[Union[str, Sequence[str]]]


def _clean(values) -> List[str]:
    cleaned = []
    for value in values:
        if not isinstance(value, str):
            raise ValidationError(
                "Invalid selectedAttributes",
                error=f"expected a string attribute value, got {type(value).__name__}",
            )
        value = value.strip()
        if value:
            cleaned.append(value)
    return cleaned


def parse_selected_attributes(raw: RawSelection) -> List[str]:
    """
    Normalize the attribute selection to an ordered list of strings.

    Accepts a JSON array (``'["Green", "Large"]'``), a comma-separated string
    (``"Green, Large"``), an already split list, or nothing. Raises
    ValidationError for malformed JSON or non-string entries.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        # Repeated form fields arrive as a list; each entry may itself be a
        # comma-separated string.
        values = []
        for item in raw:
            values.extend(parse_selected_attributes(item) if isinstance(item, str) else _clean([item]))
        return values

    text = raw.strip()
    if not text:
        return []
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError("Invalid selectedAttributes", error=f"malformed JSON: {e}")
        if not isinstance(decoded, list):
            raise ValidationError("Invalid selectedAttributes", error="expected a JSON array")
        return _clean(decoded)
    return _clean(text.split(","))


def resolve_attribute_ids(db: Session, values: Sequence[str]) -> List[int]:
    """
    Map attribute values to their ids with a single lookup query.
    Unknown values are dropped, not created.
    """
    if not values:
        return []
    rows = (
        db.query(Attribute.id, Attribute.value)
        .filter(Attribute.value.in_(set(values)))
        .all()
    )
    id_by_value = {row.value: row.id for row in rows}
    resolved = [id_by_value[value] for value in values if value in id_by_value]

    dropped = [value for value in values if value not in id_by_value]
    if dropped:
        logger.info(f"Ignoring unknown attribute values: {dropped}")
    return resolved

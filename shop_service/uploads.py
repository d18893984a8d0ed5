# shop_service/uploads.py

"""
Storage for uploaded product images. Files are written to UPLOAD_DIR and the
stored path is what ends up in product_images.image_url.
"""
import logging
import os
import shutil
import uuid
from typing import List, Optional

from fastapi import UploadFile

logger = logging.getLogger(__name__)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")


def save_uploads(files: Optional[List[UploadFile]]) -> List[str]:
    """Persist each uploaded file under a unique name and return the stored paths."""
    if not files:
        return []
    os.makedirs(UPLOAD_DIR, exist_ok=True)

    paths = []
    for upload in files:
        if not upload.filename:
            continue
        suffix = os.path.splitext(upload.filename)[1].lower()
        path = os.path.join(UPLOAD_DIR, f"{uuid.uuid4().hex}{suffix}")
        with open(path, "wb") as out:
            shutil.copyfileobj(upload.file, out)
        paths.append(path)

    logger.info(f"Stored {len(paths)} uploaded image(s) in {UPLOAD_DIR}.")
    return paths


def discard_uploads(paths: List[str]) -> None:
    """Remove stored files whose database rows were never committed."""
    for path in paths:
        if not path:
            continue
        try:
            os.remove(path)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning(f"Could not remove uploaded file {path}: {e}")
    if paths:
        logger.info(f"Discarded {len(paths)} uploaded image(s) after a failed write.")

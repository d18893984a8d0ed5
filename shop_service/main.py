# shop_service/main.py

"""
FastAPI Shop Service API.
Product catalog management (create, read, update, delete with attribute and
image links) and user/school/sales-employee registration and relationships.
"""
import logging
import os
import sys
import time
from contextlib import asynccontextmanager
from typing import List, Optional

import pydantic
from fastapi import Depends, FastAPI, File, Form, Path, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from . import catalog, product_writer, users
from .attributes import parse_selected_attributes
from .db import Base, engine, get_db
from .errors import ShopServiceError, ValidationError
from .models import MAX_ROW_ID
from .schemas import (
    CountResponse,
    MessageResponse,
    PlainMessage,
    ProductCreate,
    ProductDetailResponse,
    ProductListResponse,
    ProductUpdate,
    ProductWriteResponse,
    SchoolName,
    SchoolSummary,
    SEDetailsResponse,
    SEEmployeeId,
    SESchoolAssignment,
    UserRegister,
    UserSummary,
)
from .uploads import UPLOAD_DIR, discard_uploads, save_uploads

# -----------------------------
# Configure Logging
# -----------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

# Suppress noisy logs from third-party libraries for cleaner output
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.INFO)

DB_CONNECT_MAX_RETRIES = 10
DB_CONNECT_RETRY_DELAY_SECONDS = 5


def init_database():
    """
    Ensures database tables are created (if not exist).
    Retries while the database is still coming up; exits the process if it
    never does.
    """
    for i in range(DB_CONNECT_MAX_RETRIES):
        try:
            logger.info(
                f"Attempting to connect to the database and create tables (attempt {i+1}/{DB_CONNECT_MAX_RETRIES})..."
            )
            Base.metadata.create_all(bind=engine)
            logger.info("Successfully connected to the database and ensured tables exist.")
            return
        except OperationalError as e:
            logger.warning(f"Failed to connect to the database: {e}")
            if i < DB_CONNECT_MAX_RETRIES - 1:
                logger.info(f"Retrying in {DB_CONNECT_RETRY_DELAY_SECONDS} seconds...")
                time.sleep(DB_CONNECT_RETRY_DELAY_SECONDS)
            else:
                logger.critical(
                    f"Failed to connect to the database after {DB_CONNECT_MAX_RETRIES} attempts. Exiting application."
                )
                sys.exit(1)
        except Exception as e:
            logger.critical(f"An unexpected error occurred during database startup: {e}", exc_info=True)
            sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_database()
    yield
    engine.dispose()
    logger.info("Database engine disposed.")


# -----------------------------
# FastAPI App Initialization
# -----------------------------
app = FastAPI(
    title="Shop Service API",
    description="Product catalog and school/SE user management",
    version="1.0.0",
    lifespan=lifespan,
)

# Enable CORS (for frontend dev/testing)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Use specific origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")


@app.exception_handler(ShopServiceError)
async def shop_service_error_handler(request: Request, exc: ShopServiceError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{request.method} {request.url.path} failed: {exc.message} ({exc.error})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed unexpectedly: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Internal server error"},
    )


def _validated(schema, **fields):
    """Build a schema from form fields, reporting failures as a 400."""
    try:
        return schema(**fields)
    except pydantic.ValidationError as e:
        raise ValidationError(
            "Invalid product data",
            error="; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()),
        )


# --- Root Endpoint ---
@app.get("/", status_code=status.HTTP_200_OK, summary="Root endpoint")
async def read_root():
    """
    Returns a welcome message for the Shop Service.
    """
    return {"message": "Welcome to the Shop Service!"}


# --- Health Check Endpoint ---
@app.get("/health", status_code=status.HTTP_200_OK, summary="Health check endpoint")
async def health_check():
    """
    A simple health check endpoint to verify the service is running.
    """
    return {"status": "ok", "service": "shop-service"}


# -----------------------------
# Product Endpoints
# -----------------------------


@app.post(
    "/products",
    response_model=ProductWriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
)
def create_product(
    name: Optional[str] = Form(None),
    slug: Optional[str] = Form(None),
    shortDescription: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stockQuantity: Optional[str] = Form(None),
    categoryId: Optional[str] = Form(None),
    subcategoryId: Optional[str] = Form(None),
    subSubcategoryId: Optional[str] = Form(None),
    selectedAttributes: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
):
    """
    Creates a product from a multipart form, linking the selected attributes
    and the uploaded images in the same transaction.

    - `selectedAttributes` may be a JSON array, a comma-separated string, or absent.
    - Unknown attribute values are ignored.
    """
    logger.info(f"Creating product: {name}")
    product = _validated(
        ProductCreate,
        name=name,
        slug=slug,
        short_description=shortDescription,
        description=description,
        price=price,
        stock_quantity=stockQuantity,
        category_id=categoryId,
        subcategory_id=subcategoryId,
        sub_subcategory_id=subSubcategoryId,
    )
    # Fail fast on a malformed selection before any file is written.
    requested = parse_selected_attributes(selectedAttributes)
    logger.info(f"Product '{name}' requests attributes: {requested}")

    image_paths = save_uploads(images)
    try:
        product_id = product_writer.create_product(db, product, selectedAttributes, image_paths)
    except ShopServiceError:
        discard_uploads(image_paths)
        raise
    return {
        "success": True,
        "message": "Product added successfully",
        "data": {"productId": product_id},
    }


@app.get("/products", response_model=ProductListResponse, summary="List all products")
def list_products(db: Session = Depends(get_db)):
    """
    Returns every product with its category name and image list.
    """
    return {"success": True, "data": catalog.list_products(db)}


@app.get("/products/{product_id}", response_model=ProductDetailResponse, summary="Retrieve a product by ID")
def get_product(product_id: str, db: Session = Depends(get_db)):
    """
    Retrieves a single product by ID.

    - 400 when the ID is not an integer, 404 when no product matches.
    """
    logger.info(f"Fetching product with ID: {product_id}")
    return {"success": True, "data": catalog.get_product(db, product_id)}


@app.put("/products/{product_id}", response_model=ProductWriteResponse, summary="Update an existing product")
def update_product(
    product_id: str,
    name: Optional[str] = Form(None),
    slug: Optional[str] = Form(None),
    shortDescription: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stockQuantity: Optional[str] = Form(None),
    categoryId: Optional[str] = Form(None),
    subcategoryId: Optional[str] = Form(None),
    subSubcategoryId: Optional[str] = Form(None),
    selectedAttributes: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
):
    """
    Updates only the supplied fields. A new attribute selection replaces the
    old one; uploaded images are added to the existing ones.
    """
    pid = catalog.parse_product_id(product_id)
    changes = _validated(
        ProductUpdate,
        name=name,
        slug=slug,
        short_description=shortDescription,
        description=description,
        price=price,
        stock_quantity=stockQuantity,
        category_id=categoryId,
        subcategory_id=subcategoryId,
        sub_subcategory_id=subSubcategoryId,
    )
    logger.info(f"Updating product with ID: {pid} with data: {changes.model_dump(exclude_unset=True)}")
    parse_selected_attributes(selectedAttributes)

    image_paths = save_uploads(images)
    try:
        product_writer.update_product(db, pid, changes, selectedAttributes, image_paths)
    except ShopServiceError:
        discard_uploads(image_paths)
        raise
    return {
        "success": True,
        "message": "Product updated successfully",
        "data": {"productId": pid},
    }


@app.delete("/products/{product_id}", response_model=MessageResponse, summary="Delete a product by ID")
def delete_product(product_id: str, db: Session = Depends(get_db)):
    pid = catalog.parse_product_id(product_id)
    logger.info(f"Attempting to delete product with ID: {pid}")
    product_writer.delete_product(db, pid)
    return {"success": True, "message": "Product deleted successfully"}


# -----------------------------
# User / School / SE Endpoints
# -----------------------------


@app.post("/users/register", response_model=PlainMessage, summary="Register a student, school or SE")
def register_user(payload: UserRegister, db: Session = Depends(get_db)):
    users.register_user(db, payload)
    return {"message": "User registered successfully!"}


@app.get("/users", response_model=List[UserSummary], summary="List all users with their role details")
def get_all_users(db: Session = Depends(get_db)):
    return users.list_users(db)


@app.get("/schools", response_model=List[SchoolName], summary="List school names")
def fetch_schools(db: Session = Depends(get_db)):
    return users.list_school_names(db)


@app.get("/se-employees", response_model=List[SEEmployeeId], summary="List SE employee IDs")
def fetch_se_employees(db: Session = Depends(get_db)):
    return users.list_se_employee_ids(db)


@app.get("/se/{se_id}/schools", response_model=List[SchoolSummary], summary="Schools registered under an SE")
def get_schools_by_se(se_id: str, db: Session = Depends(get_db)):
    return users.schools_for_se(db, se_id)


@app.get("/se/{se_id}/details", response_model=SEDetailsResponse, summary="SE details and school count")
def check_se_details(se_id: str, db: Session = Depends(get_db)):
    return users.se_details(db, se_id)


@app.post("/se/schools", response_model=PlainMessage, summary="Assign a school to an SE")
def assign_school_to_se(assignment: SESchoolAssignment, db: Session = Depends(get_db)):
    users.assign_school_to_se(db, assignment)
    return {"message": "School assigned to SE successfully"}


@app.delete(
    "/se/{se_employee_id}/schools/{school_id}",
    response_model=PlainMessage,
    summary="Remove a school from an SE",
)
def remove_school_from_se(
    se_employee_id: str,
    school_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    db: Session = Depends(get_db),
):
    users.remove_school_from_se(db, se_employee_id, school_id)
    return {"message": "School removed from SE successfully"}


@app.get(
    "/schools/{school_id}/students/count",
    response_model=CountResponse,
    summary="Number of students in a school",
)
def get_student_count_by_school(
    school_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    db: Session = Depends(get_db),
):
    return {"count": users.student_count_for_school(db, school_id)}

# shop_service/schemas.py

"""
Pydantic schemas for the shop service API.
These define the data structures for incoming requests and outgoing responses,
ensuring data validation and clear API contracts.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .models import MAX_ROW_ID


def _drop_blank(data):
    # Multipart forms send absent fields as empty strings
    if isinstance(data, dict):
        return {k: v for k, v in data.items() if v is not None and v != ""}
    return data


# Schema for creating a new product from the POST /products form.
# Missing price and stock default to 0; missing category ids stay null.
class ProductCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=255, description="Name of the product.")
    slug: Optional[str] = Field(None, max_length=255, description="URL slug of the product.")
    short_description: Optional[str] = Field(None, description="One-line summary.")
    description: Optional[str] = Field(None, description="Detailed description of the product.")
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2, description="Price. Must be non-negative.")
    stock_quantity: int = Field(0, ge=0, le=MAX_ROW_ID, description="Current stock quantity. Must be non-negative.")
    category_id: Optional[int] = Field(None, ge=1, le=MAX_ROW_ID)
    subcategory_id: Optional[int] = Field(None, ge=1, le=MAX_ROW_ID)
    sub_subcategory_id: Optional[int] = Field(None, ge=1, le=MAX_ROW_ID)

    @model_validator(mode="before")
    @classmethod
    def drop_blank_fields(cls, data):
        return _drop_blank(data)


# Schema for PUT /products/{id}. Only the fields actually supplied are applied.
class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    short_description: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    stock_quantity: Optional[int] = Field(None, ge=0, le=MAX_ROW_ID)
    category_id: Optional[int] = Field(None, ge=1, le=MAX_ROW_ID)
    subcategory_id: Optional[int] = Field(None, ge=1, le=MAX_ROW_ID)
    sub_subcategory_id: Optional[int] = Field(None, ge=1, le=MAX_ROW_ID)

    @model_validator(mode="before")
    @classmethod
    def drop_blank_fields(cls, data):
        return _drop_blank(data)


# Denormalized read shape: product + category name + image list.
class ProductView(BaseModel):
    id: int
    name: Optional[str] = None
    slug: Optional[str] = None
    short_description: Optional[str] = None
    description: Optional[str] = None
    price: float
    stock_quantity: int
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    sub_subcategory_id: Optional[int] = None
    attribute: Optional[str] = None
    created_at: Optional[datetime] = None
    category_name: Optional[str] = None
    images: List[str] = Field(default_factory=list)


class ProductListResponse(BaseModel):
    success: bool = True
    data: List[ProductView]


class ProductDetailResponse(BaseModel):
    success: bool = True
    data: ProductView


class ProductIdData(BaseModel):
    productId: int


class ProductWriteResponse(BaseModel):
    success: bool = True
    message: str
    data: ProductIdData


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# -----------------------------
# Users / schools / SE
# -----------------------------


class CamelModel(BaseModel):
    """Accepts the camelCase keys the frontend sends, or snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


class UserRegister(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    mobile: Optional[str] = Field(None, max_length=32)
    otp: Optional[str] = Field(None, max_length=16)
    # bcrypt only looks at the first 72 bytes
    password: str = Field(..., min_length=1, max_length=72)
    user_type: Literal["student", "school", "se"]
    school_name: Optional[str] = Field(None, max_length=255)
    pin_code: Optional[str] = Field(None, max_length=16)
    city: Optional[str] = None
    state: Optional[str] = None
    address: Optional[str] = None
    employee_id: Optional[str] = Field(None, max_length=64)

    @model_validator(mode="after")
    def check_role_fields(self):
        if self.user_type == "school" and not self.school_name:
            raise ValueError("schoolName is required for school accounts")
        if self.user_type == "se" and not self.employee_id:
            raise ValueError("employeeId is required for SE accounts")
        return self


class SESchoolAssignment(CamelModel):
    se_employee_id: str = Field(..., min_length=1, max_length=64)
    school_id: int = Field(..., ge=1, le=MAX_ROW_ID)


class UserSummary(BaseModel):
    id: int
    full_name: str
    email: str
    mobile: Optional[str] = None
    role: str
    school_name: Optional[str] = None
    se_employee_id: Optional[str] = None


class SchoolName(BaseModel):
    school_name: str


class SEEmployeeId(BaseModel):
    employee_id: str


class SchoolSummary(BaseModel):
    id: int
    school_name: str
    city: Optional[str] = None
    state: Optional[str] = None


class SEDetailsResponse(BaseModel):
    seDetails: Optional[Dict[str, Any]] = None
    schoolsCount: int


class CountResponse(BaseModel):
    count: int


class PlainMessage(BaseModel):
    message: str

# shop_service/models.py

"""
SQLAlchemy database models for the shop service.
Catalog tables (categories, products, attributes and their link tables)
and the user tables (users, students, schools, sales employees).
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from .db import Base

# Largest value an Integer column can hold
MAX_ROW_ID = 2**31 - 1


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)


class Product(Base):
    """
    SQLAlchemy model for the 'products' table.
    Only written through the product writer; attribute and image links live
    in their own tables.
    """

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=True, index=True)
    slug = Column(String(255), nullable=True)
    short_description = Column(Text, nullable=True)
    description = Column(Text, nullable=True)

    # Numeric with 10 total digits and 2 decimal places.
    price = Column(Numeric(10, 2), nullable=False, default=0)
    stock_quantity = Column(Integer, nullable=False, default=0)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    subcategory_id = Column(Integer, nullable=True)
    sub_subcategory_id = Column(Integer, nullable=True)

    # Raw attribute selection as submitted by the client
    attribute = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock_quantity})>"


class Attribute(Base):
    """Reference data: one variant value such as 'Green' or 'Large'."""

    __tablename__ = "attributes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    value = Column(String(255), nullable=False, index=True)


class ProductAttribute(Base):
    __tablename__ = "product_attributes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    attribute_id = Column(Integer, ForeignKey("attributes.id"), nullable=False)


class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    image_url = Column(String(1024), nullable=False)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    mobile = Column(String(32), nullable=True)
    otp = Column(String(16), nullable=True)
    # bcrypt hash, never the plain password
    password = Column(String(255), nullable=False)
    user_type = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', type='{self.user_type}')>"


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    school_name = Column(String(255), nullable=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=True, index=True)


class School(Base):
    __tablename__ = "schools"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    school_name = Column(String(255), nullable=False)
    pin_code = Column(String(16), nullable=True)
    city = Column(String(255), nullable=True)
    state = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    # Employee id of the SE who registered/owns this school
    employee_id = Column(String(64), nullable=True, index=True)


class SEEmployee(Base):
    __tablename__ = "se_employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    employee_id = Column(String(64), nullable=False, index=True)


class SESchoolMapping(Base):
    __tablename__ = "se_school_mapping"

    id = Column(Integer, primary_key=True, autoincrement=True)
    se_employee_id = Column(String(64), nullable=False, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False)

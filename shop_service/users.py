# shop_service/users.py

"""
User, school and sales-employee (SE) registration and relationship queries.
"""
import logging
from typing import List, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import PersistenceError
from .models import School, SEEmployee, SESchoolMapping, Student, User
from .schemas import SESchoolAssignment, UserRegister
from .security import hash_password

logger = logging.getLogger(__name__)


def _school_id_by_name(db: Session, school_name: Optional[str]) -> Optional[int]:
    if not school_name:
        return None
    row = db.query(School.id).filter(School.school_name == school_name).order_by(School.id).first()
    return row.id if row else None


def register_user(db: Session, payload: UserRegister) -> int:
    """
    Create the user row and its role row (student, school or SE) in one
    transaction. Returns the new user id.
    """
    logger.info(f"Registering user with data: type={payload.user_type}, name={payload.first_name} {payload.last_name}")
    hashed = hash_password(payload.password)
    try:
        user = User(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            mobile=payload.mobile,
            otp=payload.otp,
            password=hashed,
            user_type=payload.user_type,
        )
        db.add(user)
        db.flush()

        if payload.user_type == "student":
            db.add(
                Student(
                    user_id=user.id,
                    school_name=payload.school_name,
                    school_id=_school_id_by_name(db, payload.school_name),
                )
            )
        elif payload.user_type == "school":
            db.add(
                School(
                    user_id=user.id,
                    school_name=payload.school_name,
                    pin_code=payload.pin_code,
                    city=payload.city,
                    state=payload.state,
                    address=payload.address,
                    employee_id=payload.employee_id,
                )
            )
        elif payload.user_type == "se":
            db.add(SEEmployee(user_id=user.id, employee_id=payload.employee_id))

        db.flush()
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error in register_user: {e}", exc_info=True)
        raise PersistenceError.from_exception("An error occurred while registering the user.", e) from e

    logger.info(f"User {user.id} registered as {payload.user_type}.")
    return user.id


def list_users(db: Session) -> List[dict]:
    full_name = (User.first_name + " " + User.last_name).label("full_name")
    school_name = case(
        (User.user_type == "student", Student.school_name),
        (User.user_type == "school", School.school_name),
        else_=None,
    ).label("school_name")
    se_employee_id = case((User.user_type == "se", SEEmployee.employee_id), else_=None).label("se_employee_id")
    try:
        rows = (
            db.query(User.id, full_name, User.email, User.mobile, User.user_type.label("role"), school_name, se_employee_id)
            .outerjoin(Student, Student.user_id == User.id)
            .outerjoin(School, School.user_id == User.id)
            .outerjoin(SEEmployee, SEEmployee.user_id == User.id)
            .order_by(User.id)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching users: {e}", exc_info=True)
        raise PersistenceError.from_exception("Failed to fetch users", e) from e
    return [dict(row._mapping) for row in rows]


def list_school_names(db: Session) -> List[dict]:
    try:
        rows = db.query(School.school_name).order_by(School.id).all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching schools: {e}", exc_info=True)
        raise PersistenceError.from_exception("Failed to fetch school names", e) from e
    return [{"school_name": row.school_name} for row in rows]


def list_se_employee_ids(db: Session) -> List[dict]:
    try:
        rows = (
            db.query(SEEmployee.employee_id)
            .join(User, SEEmployee.user_id == User.id)
            .filter(User.user_type == "se")
            .order_by(SEEmployee.employee_id)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching SE employees: {e}", exc_info=True)
        raise PersistenceError.from_exception("Failed to fetch SE Employee IDs", e) from e
    return [{"employee_id": row.employee_id} for row in rows]


def schools_for_se(db: Session, se_id: str) -> List[dict]:
    logger.info(f"Fetching schools for SE ID: {se_id}")
    try:
        rows = (
            db.query(School.id, School.school_name, School.city, School.state)
            .filter(School.employee_id == se_id)
            .order_by(School.id)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Error fetching schools for SE {se_id}: {e}", exc_info=True)
        raise PersistenceError.from_exception("Failed to fetch schools", e) from e
    return [dict(row._mapping) for row in rows]


def se_details(db: Session, se_id: str) -> dict:
    """The SE row with the user's name, plus how many schools carry that employee id."""
    try:
        row = (
            db.query(
                SEEmployee.id,
                SEEmployee.user_id,
                SEEmployee.employee_id,
                User.first_name,
                User.last_name,
            )
            .join(User, SEEmployee.user_id == User.id)
            .filter(SEEmployee.employee_id == se_id)
            .first()
        )
        schools_count = db.query(func.count(School.id)).filter(School.employee_id == se_id).scalar()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching SE details for {se_id}: {e}", exc_info=True)
        raise PersistenceError.from_exception("Failed to fetch SE details", e) from e
    return {"seDetails": dict(row._mapping) if row else None, "schoolsCount": schools_count or 0}


def assign_school_to_se(db: Session, assignment: SESchoolAssignment) -> None:
    try:
        db.add(SESchoolMapping(se_employee_id=assignment.se_employee_id, school_id=assignment.school_id))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error assigning school to SE: {e}", exc_info=True)
        raise PersistenceError.from_exception("Failed to assign school to SE", e) from e
    logger.info(f"School {assignment.school_id} assigned to SE {assignment.se_employee_id}.")


def remove_school_from_se(db: Session, se_employee_id: str, school_id: int) -> None:
    try:
        db.query(SESchoolMapping).filter(
            SESchoolMapping.se_employee_id == se_employee_id,
            SESchoolMapping.school_id == school_id,
        ).delete(synchronize_session=False)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error removing school from SE: {e}", exc_info=True)
        raise PersistenceError.from_exception("Failed to remove school from SE", e) from e


def student_count_for_school(db: Session, school_id: int) -> int:
    try:
        return db.query(func.count(Student.id)).filter(Student.school_id == school_id).scalar() or 0
    except SQLAlchemyError as e:
        logger.error(f"Error fetching student count: {e}", exc_info=True)
        raise PersistenceError.from_exception("Failed to fetch student count", e) from e

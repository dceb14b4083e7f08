"""
Shared query helper functions.

Centralizes common SQLAlchemy query patterns like joinedload options
to reduce duplication across routers.
"""
from sqlalchemy import or_
from sqlalchemy.orm import joinedload
from models import Student, Tutoring, Payment, Evaluation, Material


def student_with_teacher():
    """
    Joinedload options for student queries.

    Usage:
        query.options(*student_with_teacher())
    """
    return [joinedload(Student.teacher)]


def tutoring_with_student():
    return [joinedload(Tutoring.student)]


def payment_with_student():
    return [joinedload(Payment.student)]


def evaluation_with_relations():
    """Loads the evaluated student and the tutoring it refers to."""
    return [
        joinedload(Evaluation.student),
        joinedload(Evaluation.tutoring),
    ]


def material_with_creator():
    return [joinedload(Material.created_by)]


def ilike_any(term: str, *columns):
    """Case-insensitive substring match against any of the columns."""
    pattern = f"%{term}%"
    return or_(*[column.ilike(pattern) for column in columns])

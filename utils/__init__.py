"""
Shared utility functions for the backend.
"""
from .pagination import paginate
from .query_helpers import (
    student_with_teacher,
    tutoring_with_student,
    payment_with_student,
    evaluation_with_relations,
    material_with_creator,
    ilike_any,
)
from .rate_limiter import rate_limit, RATE_LIMITS, clear_rate_limits

__all__ = [
    "paginate",
    "student_with_teacher",
    "tutoring_with_student",
    "payment_with_student",
    "evaluation_with_relations",
    "material_with_creator",
    "ilike_any",
    "rate_limit",
    "RATE_LIMITS",
    "clear_rate_limits",
]

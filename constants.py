"""
Shared constants for the backend.

Centralizes role names, status values and other enumerations used across routers.
"""
from datetime import datetime, timezone
from enum import Enum


class Role(str, Enum):
    """
    Caller roles.

    ADMIN and TEACHER are stored on staff users. STUDENT is never stored: it is
    derived from authenticating against the students table.
    """
    ADMIN = 'ADMIN'
    TEACHER = 'TEACHER'
    STUDENT = 'STUDENT'


# Roles that can be assigned to a staff user
STAFF_ROLES = [Role.ADMIN.value, Role.TEACHER.value]


class StudentStatus(str, Enum):
    ACTIVE = 'ACTIVE'
    INACTIVE = 'INACTIVE'


class TutoringStatus(str, Enum):
    SCHEDULED = 'SCHEDULED'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class PaymentStatus(str, Enum):
    PENDING = 'PENDING'
    PAID = 'PAID'
    OVERDUE = 'OVERDUE'


class EvaluationRating(str, Enum):
    """Rating scale used for behavior, participation and progress."""
    EXCELENTE = 'EXCELENTE'
    BOM = 'BOM'
    MEDIO = 'MEDIO'
    RUIM = 'RUIM'


# Password policy
MIN_PASSWORD_LENGTH = 6

# Default theming for staff profiles
DEFAULT_PRIMARY_COLOR = '#0ea5e9'
DEFAULT_SECONDARY_COLOR = '#f8fafc'
DEFAULT_TEXT_COLOR = '#1e293b'
DEFAULT_FONT_FAMILY = 'Inter'

# Pagination
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

"""
Account lookup across the two identity tables.

Staff users and students are stored separately, so email uniqueness across
both is enforced here rather than by a single database constraint.
"""
import logging
from functools import lru_cache
from typing import Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from auth.passwords import hash_password, verify_password_async
from models import User, Student

logger = logging.getLogger(__name__)


def email_in_use(
    db: Session,
    email: str,
    exclude_user_id: Optional[int] = None,
    exclude_student_id: Optional[int] = None,
) -> bool:
    """
    Whether an email already belongs to a staff user or a student.

    The exclude_* arguments skip the record being updated.
    """
    email = email.strip().lower()

    user_query = db.query(User.id).filter(func.lower(User.email) == email)
    if exclude_user_id is not None:
        user_query = user_query.filter(User.id != exclude_user_id)
    if user_query.first() is not None:
        return True

    student_query = db.query(Student.id).filter(func.lower(Student.email) == email)
    if exclude_student_id is not None:
        student_query = student_query.filter(Student.id != exclude_student_id)
    return student_query.first() is not None


@lru_cache(maxsize=1)
def _unknown_account_hash() -> str:
    """Hash checked when no account matches, so unknown emails cost one bcrypt verify too."""
    return hash_password("unknown-account")


def find_account_by_email(db: Session, email: str) -> Optional[Union[User, Student]]:
    """
    Find the account that may log in with this email.

    Staff users take precedence; students are only considered when they have
    a password set.
    """
    email = email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()
    if user:
        return user
    return db.query(Student).filter(
        func.lower(Student.email) == email,
        Student.password.isnot(None),
    ).first()


async def authenticate(db: Session, email: str, password: str) -> Optional[Union[User, Student]]:
    """
    Verify credentials. Returns the account, or None when the email is unknown
    or the password does not match.
    """
    account = find_account_by_email(db, email)
    if account is None:
        await verify_password_async(password, _unknown_account_hash())
        return None
    if not await verify_password_async(password, account.password):
        return None
    return account

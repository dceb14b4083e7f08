"""
FastAPI dependencies for authentication and authorization.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from database import get_db
from models import Student
from .identity import Identity, StaffIdentity, StudentIdentity
from .jwt_handler import verify_token
from .scope import Scope, scope_for
from .sessions import find_session, delete_session, is_expired

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers=_BEARER_CHALLENGE,
    )


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Identity:
    """
    Resolve the caller from the ``Authorization: Bearer <token>`` header.

    1. no token                      -> 401 "Access token required"
    2. bad signature / malformed     -> 401 "Invalid token"
    3. no session row for the token  -> 401 "Session not found"
    4. session past its expiry       -> session row deleted, 401 "Session expired"
    5. session owner cannot be found -> 401 "Invalid session"

    Usage:
        @router.get("/protected")
        def protected_route(identity: Identity = Depends(get_current_identity)):
            ...
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Access token required")

    token = credentials.credentials
    if verify_token(token) is None:
        raise _unauthorized("Invalid token")

    session = find_session(db, token)
    if session is None:
        raise _unauthorized("Session not found")

    if is_expired(session):
        # The commit in delete_session expires the instance; read the id first
        session_id = session.id
        delete_session(db, session_id)
        logger.info("Removed expired session %s", session_id)
        raise _unauthorized("Session expired")

    if session.student is not None:
        return StudentIdentity(student=session.student, session_id=session.id)
    if session.user is not None:
        return StaffIdentity(user=session.user, session_id=session.id)

    logger.warning("Session %s has no owner", session.id)
    raise _unauthorized("Invalid session")


def require_admin(
    identity: Identity = Depends(get_current_identity),
) -> StaffIdentity:
    """
    Require the caller to be an admin.

    Raises HTTPException 403 otherwise.
    """
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return identity


def require_staff(
    identity: Identity = Depends(get_current_identity),
) -> StaffIdentity:
    """
    Require an admin or teacher. Students are read-only and get 403.
    """
    if not isinstance(identity, StaffIdentity):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff access required",
        )
    return identity


def get_scope(identity: Identity = Depends(get_current_identity)) -> Scope:
    """Ownership scope of the current caller."""
    return scope_for(identity)


def get_student_in_scope(db: Session, student_id: int, scope: Scope) -> Student:
    """
    Load a student and check it is inside the caller's scope.

    Raises 404 if the student does not exist, 403 if it exists but belongs
    to someone else.
    """
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )
    if not scope.allows_student(student):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. You can only access your own students.",
        )
    return student


def get_student_owned_in_scope(db: Session, model, row_id: int, scope: Scope, label: str):
    """
    Load a row owned by a student (tutoring, payment, evaluation) and check
    its student is inside the caller's scope.

    Raises 404 if the row does not exist, 403 if it is out of scope.
    """
    row = db.query(model).filter(model.id == row_id).first()
    if not row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label} not found",
        )
    if not scope.allows_student(row.student):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
    return row

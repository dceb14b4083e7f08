"""
Session store: issuing and revoking bearer-token sessions.

A session row holds the raw token for lookup, its expiry, and a reference to
exactly one owner (staff user or student).
"""
import logging
from datetime import timedelta
from typing import Optional, Tuple, Union

from sqlalchemy.orm import Session

from constants import Role, utc_now
from models import AuthSession, User, Student
from .jwt_handler import create_access_token, session_ttl

logger = logging.getLogger(__name__)


def issue_session(
    db: Session,
    account: Union[User, Student],
    ttl: Optional[timedelta] = None,
) -> Tuple[str, AuthSession]:
    """
    Sign a token for an already-authenticated account and persist its session.

    Args:
        db: Database session
        account: Staff user or student whose password has been verified
        ttl: Session lifetime, defaults to SESSION_TTL_DAYS

    Returns:
        (token, session row)
    """
    is_student = isinstance(account, Student)
    role = Role.STUDENT.value if is_student else account.role
    expires_at = utc_now() + (ttl if ttl is not None else session_ttl())

    token = create_access_token(
        {
            "sub": str(account.id),
            "email": account.email,
            "role": role,
            "kind": "student" if is_student else "user",
        },
        expires_at=expires_at,
    )

    session = AuthSession(
        token=token,
        expires_at=expires_at,
        user_id=None if is_student else account.id,
        student_id=account.id if is_student else None,
    )
    db.add(session)
    db.commit()
    db.refresh(session)

    logger.info("Session %s issued for %s (%s)", session.id, account.email, role)
    return token, session


def find_session(db: Session, token: str) -> Optional[AuthSession]:
    return db.query(AuthSession).filter(AuthSession.token == token).first()


def delete_session(db: Session, session_id: int) -> bool:
    """Delete a session by id. Returns False if it was already gone."""
    deleted = db.query(AuthSession).filter(AuthSession.id == session_id).delete(
        synchronize_session=False
    )
    db.commit()
    return deleted > 0


def is_expired(session: AuthSession) -> bool:
    return utc_now() > session.expires_at

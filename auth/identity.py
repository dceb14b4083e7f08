"""
Resolved caller identity.

An authenticated request carries exactly one of two variants: a staff user
(admin or teacher, role read from the users table) or a student (role implied
by the table the account was found in). The variant is resolved once by the
auth dependency and passed along as a typed value.
"""
from dataclasses import dataclass
from typing import Union

from constants import Role
from models import User, Student
from schemas import IdentityResponse


@dataclass(frozen=True)
class StaffIdentity:
    user: User
    session_id: int

    @property
    def id(self) -> int:
        return self.user.id

    @property
    def email(self) -> str:
        return self.user.email

    @property
    def name(self):
        return self.user.name

    @property
    def role(self) -> Role:
        return Role(self.user.role)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def account(self) -> User:
        return self.user


@dataclass(frozen=True)
class StudentIdentity:
    student: Student
    session_id: int

    @property
    def id(self) -> int:
        return self.student.id

    @property
    def email(self):
        return self.student.email

    @property
    def name(self) -> str:
        return self.student.name

    @property
    def role(self) -> Role:
        return Role.STUDENT

    @property
    def is_admin(self) -> bool:
        return False

    @property
    def account(self) -> Student:
        return self.student


Identity = Union[StaffIdentity, StudentIdentity]


def user_to_response(user: User) -> IdentityResponse:
    """Public view of a staff user (no password hash)."""
    return IdentityResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=Role(user.role),
        primary_color=user.primary_color,
        secondary_color=user.secondary_color,
        text_color=user.text_color,
        font_family=user.font_family,
        avatar_url=user.avatar_url,
        logo_url=user.logo_url,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def student_to_response(student: Student) -> IdentityResponse:
    """Public view of a student account (no password hash)."""
    return IdentityResponse(
        id=student.id,
        email=student.email,
        name=student.name,
        role=Role.STUDENT,
        phone=student.phone,
        teacher_id=student.teacher_id,
        created_at=student.created_at,
        updated_at=student.updated_at,
    )


def account_to_response(account: Union[User, Student]) -> IdentityResponse:
    if isinstance(account, Student):
        return student_to_response(account)
    return user_to_response(account)


def identity_to_response(identity: Identity) -> IdentityResponse:
    return account_to_response(identity.account)

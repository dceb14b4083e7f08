"""
Ownership scoping.

A Scope is computed once per request from the resolved identity and applied
the same way to list queries (as a pre-query filter, so pagination totals
never count rows outside the caller's reach) and to single-resource checks.

    Admin   -> Scope.all()
    Teacher -> Scope.teacher(teacher_id)   rows whose student belongs to the teacher
    Student -> Scope.student(student_id)   rows that belong to the student
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import false
from sqlalchemy.orm import Query

from constants import Role
from models import Student, Material


class ScopeKind(str, Enum):
    ALL = "all"
    TEACHER = "teacher"
    STUDENT = "student"


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    owner_id: Optional[int] = None

    @classmethod
    def all(cls) -> "Scope":
        return cls(ScopeKind.ALL)

    @classmethod
    def teacher(cls, teacher_id: int) -> "Scope":
        return cls(ScopeKind.TEACHER, teacher_id)

    @classmethod
    def student(cls, student_id: int) -> "Scope":
        return cls(ScopeKind.STUDENT, student_id)

    def allows_student(self, student: Student) -> bool:
        """Whether a student (and everything it owns) is within this scope."""
        if self.kind == ScopeKind.ALL:
            return True
        if self.kind == ScopeKind.TEACHER:
            return student.teacher_id == self.owner_id
        return student.id == self.owner_id

    def allows_material(self, material: Material) -> bool:
        if self.kind == ScopeKind.ALL:
            return True
        if self.kind == ScopeKind.TEACHER:
            return material.created_by_id == self.owner_id
        return False


def scope_for(identity) -> Scope:
    """Derive the scope for a resolved identity."""
    if identity.role == Role.ADMIN:
        return Scope.all()
    if identity.role == Role.TEACHER:
        return Scope.teacher(identity.id)
    return Scope.student(identity.id)


def filter_students(query: Query, scope: Scope) -> Query:
    """Restrict a Student query to the scope."""
    if scope.kind == ScopeKind.TEACHER:
        return query.filter(Student.teacher_id == scope.owner_id)
    if scope.kind == ScopeKind.STUDENT:
        return query.filter(Student.id == scope.owner_id)
    return query


def filter_student_owned(query: Query, model, scope: Scope) -> Query:
    """
    Restrict a query over a model with a ``student_id`` column
    (Tutoring, Payment, Evaluation) to the scope.
    """
    if scope.kind == ScopeKind.TEACHER:
        return query.join(Student, model.student_id == Student.id).filter(
            Student.teacher_id == scope.owner_id
        )
    if scope.kind == ScopeKind.STUDENT:
        return query.filter(model.student_id == scope.owner_id)
    return query


def filter_materials(query: Query, scope: Scope) -> Query:
    if scope.kind == ScopeKind.TEACHER:
        return query.filter(Material.created_by_id == scope.owner_id)
    if scope.kind == ScopeKind.STUDENT:
        return query.filter(false())
    return query

"""
Students API endpoints.

Admins see every student, teachers only their own, and a logged-in student
only themself. Only staff can create, update or delete.
"""
import logging
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from auth.dependencies import get_scope, require_staff, get_student_in_scope
from auth.identity import StaffIdentity
from auth.passwords import hash_password_async
from auth.scope import Scope, filter_students
from constants import Role, StudentStatus, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from database import get_db
from models import Student, User, Tutoring, Payment
from schemas import (
    StudentCreate,
    StudentUpdate,
    StudentResponse,
    StudentDetailResponse,
    StudentListResponse,
    StudentSavedResponse,
    TutoringResponse,
    PaymentResponse,
    MessageResponse,
)
from services.accounts import email_in_use
from utils.pagination import paginate
from utils.query_helpers import student_with_teacher, ilike_any

router = APIRouter()
logger = logging.getLogger(__name__)

RECENT_ITEMS = 5


def _student_to_response(student: Student) -> StudentResponse:
    data = StudentResponse.model_validate(student)
    data.can_login = bool(student.password)
    data.tutoring_count = len(student.tutorings)
    data.payment_count = len(student.payments)
    return data


def _get_teacher_or_400(db: Session, teacher_id: int) -> User:
    teacher = db.query(User).filter(User.id == teacher_id).first()
    if not teacher:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Teacher with ID {teacher_id} not found",
        )
    return teacher


@router.get("/students", response_model=StudentListResponse)
async def get_students(
    search: Optional[str] = Query(None, description="Search by student name or email"),
    status_filter: Optional[StudentStatus] = Query(None, alias="status", description="Filter by status"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Results per page"),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """
    List students visible to the caller.

    - **search**: Case-insensitive match on name or email
    - **status**: ACTIVE or INACTIVE
    - **page** / **limit**: Pagination (total is counted after scoping)
    """
    query = filter_students(db.query(Student).options(*student_with_teacher()), scope)

    if status_filter:
        query = query.filter(Student.status == status_filter.value)

    if search:
        query = query.filter(ilike_any(search, Student.name, Student.email))

    query = query.order_by(Student.created_at.desc(), Student.id.desc())
    students, pagination = paginate(query, page, limit)

    return StudentListResponse(
        students=[_student_to_response(s) for s in students],
        pagination=pagination,
    )


@router.get("/students/{student_id}", response_model=StudentDetailResponse)
async def get_student_detail(
    student_id: int,
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """
    Get a student with the most recent tutorings and payments.
    """
    student = get_student_in_scope(db, student_id, scope)

    tutorings = db.query(Tutoring).filter(Tutoring.student_id == student.id).order_by(
        Tutoring.created_at.desc(), Tutoring.id.desc()
    ).limit(RECENT_ITEMS).all()
    payments = db.query(Payment).filter(Payment.student_id == student.id).order_by(
        Payment.created_at.desc(), Payment.id.desc()
    ).limit(RECENT_ITEMS).all()

    detail = StudentDetailResponse(**_student_to_response(student).model_dump())
    detail.tutorings = [TutoringResponse.model_validate(t) for t in tutorings]
    detail.payments = [PaymentResponse.model_validate(p) for p in payments]
    return detail


@router.post("/students", response_model=StudentSavedResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    data: StudentCreate,
    staff: StaffIdentity = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Create a student.

    Teachers always own the students they create. Admins must name the
    owning teacher with teacher_id.
    """
    if data.email and email_in_use(db, data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already in use",
        )

    if staff.role == Role.ADMIN:
        if data.teacher_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="teacher_id is required",
            )
        teacher_id = _get_teacher_or_400(db, data.teacher_id).id
    else:
        teacher_id = staff.id

    fields = data.model_dump(exclude={"password", "teacher_id", "monthly_fee"})
    student = Student(**fields, teacher_id=teacher_id)
    if data.monthly_fee is not None:
        student.monthly_fee = Decimal(str(data.monthly_fee))
    if data.password:
        student.password = await hash_password_async(data.password)

    db.add(student)
    db.commit()
    db.refresh(student)

    logger.info("Student %s created by %s", student.id, staff.email)
    return StudentSavedResponse(message="Student created successfully", student=_student_to_response(student))


@router.put("/students/{student_id}", response_model=StudentSavedResponse)
async def update_student(
    student_id: int,
    data: StudentUpdate,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """
    Update a student. Only admins may move a student to another teacher.
    """
    student = get_student_in_scope(db, student_id, scope)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("email") and email_in_use(db, changes["email"], exclude_student_id=student.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already in use",
        )

    teacher_id = changes.pop("teacher_id", None)
    if teacher_id is not None and staff.role == Role.ADMIN:
        student.teacher_id = _get_teacher_or_400(db, teacher_id).id

    password = changes.pop("password", None)
    if password:
        student.password = await hash_password_async(password)

    monthly_fee = changes.pop("monthly_fee", None)
    if monthly_fee is not None:
        student.monthly_fee = Decimal(str(monthly_fee))

    for field, value in changes.items():
        if value is not None:
            setattr(student, field, value)

    db.commit()
    db.refresh(student)

    return StudentSavedResponse(message="Student updated successfully", student=_student_to_response(student))


@router.delete("/students/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: int,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """
    Delete a student together with their tutorings, payments, evaluations
    and login sessions.
    """
    student = get_student_in_scope(db, student_id, scope)
    db.delete(student)
    db.commit()

    logger.info("Student %s deleted by %s", student_id, staff.email)
    return MessageResponse(message="Student deleted successfully")

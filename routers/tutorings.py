"""
Tutorings API endpoints.

Tutorings are scoped through the student they belong to.
"""
import logging
from datetime import date, datetime, time
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from auth.dependencies import get_scope, require_staff, get_student_in_scope, get_student_owned_in_scope
from auth.identity import StaffIdentity
from auth.scope import Scope, filter_student_owned
from constants import TutoringStatus, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from database import get_db
from models import Tutoring
from schemas import (
    TutoringCreate,
    TutoringUpdate,
    TutoringResponse,
    TutoringListResponse,
    TutoringSavedResponse,
    MessageResponse,
)
from utils.pagination import paginate
from utils.query_helpers import tutoring_with_student

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/tutorings", response_model=TutoringListResponse)
async def get_tutorings(
    student_id: Optional[int] = Query(None, description="Filter by student ID"),
    status_filter: Optional[TutoringStatus] = Query(None, alias="status", description="Filter by status"),
    start_date: Optional[date] = Query(None, description="Next class on or after this date"),
    end_date: Optional[date] = Query(None, description="Next class on or before this date"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Results per page"),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """
    List tutorings visible to the caller, soonest next class first.
    """
    query = filter_student_owned(
        db.query(Tutoring).options(*tutoring_with_student()), Tutoring, scope
    )

    if student_id:
        query = query.filter(Tutoring.student_id == student_id)

    if status_filter:
        query = query.filter(Tutoring.status == status_filter.value)

    if start_date:
        query = query.filter(Tutoring.next_class >= datetime.combine(start_date, time.min))

    if end_date:
        query = query.filter(Tutoring.next_class <= datetime.combine(end_date, time.max))

    query = query.order_by(Tutoring.next_class.asc(), Tutoring.id.asc())
    tutorings, pagination = paginate(query, page, limit)

    return TutoringListResponse(
        tutorings=[TutoringResponse.model_validate(t) for t in tutorings],
        pagination=pagination,
    )


@router.get("/tutorings/{tutoring_id}", response_model=TutoringResponse)
async def get_tutoring(
    tutoring_id: int,
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    tutoring = get_student_owned_in_scope(db, Tutoring, tutoring_id, scope, "Tutoring")
    return TutoringResponse.model_validate(tutoring)


@router.post("/tutorings", response_model=TutoringSavedResponse, status_code=status.HTTP_201_CREATED)
async def create_tutoring(
    data: TutoringCreate,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """
    Schedule a tutoring for a student in the caller's scope.
    """
    get_student_in_scope(db, data.student_id, scope)

    tutoring = Tutoring(**data.model_dump())
    db.add(tutoring)
    db.commit()
    db.refresh(tutoring)

    logger.info("Tutoring %s created for student %s by %s", tutoring.id, tutoring.student_id, staff.email)
    return TutoringSavedResponse(
        message="Tutoring created successfully",
        tutoring=TutoringResponse.model_validate(tutoring),
    )


@router.put("/tutorings/{tutoring_id}", response_model=TutoringSavedResponse)
async def update_tutoring(
    tutoring_id: int,
    data: TutoringUpdate,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    tutoring = get_student_owned_in_scope(db, Tutoring, tutoring_id, scope, "Tutoring")

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None or field == "next_class":
            setattr(tutoring, field, value)

    db.commit()
    db.refresh(tutoring)

    return TutoringSavedResponse(
        message="Tutoring updated successfully",
        tutoring=TutoringResponse.model_validate(tutoring),
    )


@router.patch("/tutorings/{tutoring_id}/complete", response_model=TutoringSavedResponse)
async def complete_tutoring(
    tutoring_id: int,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """Mark a tutoring as completed."""
    tutoring = get_student_owned_in_scope(db, Tutoring, tutoring_id, scope, "Tutoring")
    tutoring.status = TutoringStatus.COMPLETED.value
    db.commit()
    db.refresh(tutoring)

    return TutoringSavedResponse(
        message="Tutoring marked as completed",
        tutoring=TutoringResponse.model_validate(tutoring),
    )


@router.delete("/tutorings/{tutoring_id}", response_model=MessageResponse)
async def delete_tutoring(
    tutoring_id: int,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    tutoring = get_student_owned_in_scope(db, Tutoring, tutoring_id, scope, "Tutoring")
    db.delete(tutoring)
    db.commit()

    logger.info("Tutoring %s deleted by %s", tutoring_id, staff.email)
    return MessageResponse(message="Tutoring deleted successfully")

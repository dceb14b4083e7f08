"""
Weekly evaluations API endpoints.

Evaluations are scoped through the evaluated student. A linked tutoring must
belong to that same student.
"""
import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from auth.dependencies import get_scope, require_staff, get_student_in_scope, get_student_owned_in_scope
from auth.identity import StaffIdentity
from auth.scope import Scope, filter_student_owned
from constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from database import get_db
from models import Evaluation, Tutoring
from schemas import (
    EvaluationCreate,
    EvaluationUpdate,
    EvaluationResponse,
    EvaluationListResponse,
    EvaluationSavedResponse,
    MessageResponse,
)
from utils.pagination import paginate
from utils.query_helpers import evaluation_with_relations

router = APIRouter()
logger = logging.getLogger(__name__)


def _evaluation_to_response(evaluation: Evaluation) -> EvaluationResponse:
    data = EvaluationResponse.model_validate(evaluation)
    data.student_name = evaluation.student.name if evaluation.student else None
    data.tutoring_subject = evaluation.tutoring.subject if evaluation.tutoring else None
    return data


def _check_tutoring_matches(db: Session, tutoring_id: int, student_id: int) -> None:
    tutoring = db.query(Tutoring).filter(Tutoring.id == tutoring_id).first()
    if not tutoring or tutoring.student_id != student_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tutoring does not belong to this student",
        )


@router.get("/evaluations", response_model=EvaluationListResponse)
async def get_evaluations(
    student_id: Optional[int] = Query(None, description="Filter by student ID"),
    tutoring_id: Optional[int] = Query(None, description="Filter by tutoring ID"),
    start_date: Optional[date] = Query(None, description="Week on or after this date"),
    end_date: Optional[date] = Query(None, description="Week on or before this date"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Results per page"),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """
    List evaluations visible to the caller, most recent week first.
    """
    query = filter_student_owned(
        db.query(Evaluation).options(*evaluation_with_relations()), Evaluation, scope
    )

    if student_id:
        query = query.filter(Evaluation.student_id == student_id)

    if tutoring_id:
        query = query.filter(Evaluation.tutoring_id == tutoring_id)

    if start_date:
        query = query.filter(Evaluation.week_date >= start_date)

    if end_date:
        query = query.filter(Evaluation.week_date <= end_date)

    query = query.order_by(Evaluation.week_date.desc(), Evaluation.id.desc())
    evaluations, pagination = paginate(query, page, limit)

    return EvaluationListResponse(
        evaluations=[_evaluation_to_response(e) for e in evaluations],
        pagination=pagination,
    )


@router.get("/evaluations/{evaluation_id}", response_model=EvaluationResponse)
async def get_evaluation(
    evaluation_id: int,
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    evaluation = get_student_owned_in_scope(db, Evaluation, evaluation_id, scope, "Evaluation")
    return _evaluation_to_response(evaluation)


@router.post("/evaluations", response_model=EvaluationSavedResponse, status_code=status.HTTP_201_CREATED)
async def create_evaluation(
    data: EvaluationCreate,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    get_student_in_scope(db, data.student_id, scope)
    if data.tutoring_id is not None:
        _check_tutoring_matches(db, data.tutoring_id, data.student_id)

    evaluation = Evaluation(**data.model_dump())
    db.add(evaluation)
    db.commit()
    db.refresh(evaluation)

    logger.info("Evaluation %s created for student %s by %s", evaluation.id, evaluation.student_id, staff.email)
    return EvaluationSavedResponse(
        message="Evaluation created successfully",
        evaluation=_evaluation_to_response(evaluation),
    )


@router.put("/evaluations/{evaluation_id}", response_model=EvaluationSavedResponse)
async def update_evaluation(
    evaluation_id: int,
    data: EvaluationUpdate,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    evaluation = get_student_owned_in_scope(db, Evaluation, evaluation_id, scope, "Evaluation")

    for field, value in data.model_dump(exclude_unset=True).items():
        # behavior and week_date are required columns; optional ratings may be cleared
        if value is not None or field in ("participation", "progress", "notes"):
            setattr(evaluation, field, value)

    db.commit()
    db.refresh(evaluation)

    return EvaluationSavedResponse(
        message="Evaluation updated successfully",
        evaluation=_evaluation_to_response(evaluation),
    )


@router.delete("/evaluations/{evaluation_id}", response_model=MessageResponse)
async def delete_evaluation(
    evaluation_id: int,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    evaluation = get_student_owned_in_scope(db, Evaluation, evaluation_id, scope, "Evaluation")
    db.delete(evaluation)
    db.commit()

    logger.info("Evaluation %s deleted by %s", evaluation_id, staff.email)
    return MessageResponse(message="Evaluation deleted successfully")

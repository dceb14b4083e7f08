"""
Payments API endpoints.

Payments are scoped through the student they belong to. Marking a payment
PAID without an explicit paid_at stamps the current time.
"""
import logging
from datetime import date
from decimal import Decimal
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from auth.dependencies import get_scope, require_staff, get_student_in_scope, get_student_owned_in_scope
from auth.identity import StaffIdentity
from auth.scope import Scope, filter_student_owned
from constants import PaymentStatus, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, utc_now
from database import get_db
from models import Payment
from schemas import (
    PaymentCreate,
    PaymentUpdate,
    PaymentPayRequest,
    PaymentResponse,
    PaymentListResponse,
    PaymentSavedResponse,
    MessageResponse,
)
from utils.pagination import paginate
from utils.query_helpers import payment_with_student

router = APIRouter()
logger = logging.getLogger(__name__)


def _stamp_if_paid(payment: Payment) -> None:
    if payment.status == PaymentStatus.PAID.value and payment.paid_at is None:
        payment.paid_at = utc_now()


@router.get("/payments", response_model=PaymentListResponse)
async def get_payments(
    student_id: Optional[int] = Query(None, description="Filter by student ID"),
    status_filter: Optional[PaymentStatus] = Query(None, alias="status", description="Filter by status"),
    start_date: Optional[date] = Query(None, description="Due on or after this date"),
    end_date: Optional[date] = Query(None, description="Due on or before this date"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Results per page"),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """
    List payments visible to the caller, latest due date first.
    """
    query = filter_student_owned(
        db.query(Payment).options(*payment_with_student()), Payment, scope
    )

    if student_id:
        query = query.filter(Payment.student_id == student_id)

    if status_filter:
        query = query.filter(Payment.status == status_filter.value)

    if start_date:
        query = query.filter(Payment.due_date >= start_date)

    if end_date:
        query = query.filter(Payment.due_date <= end_date)

    query = query.order_by(Payment.due_date.desc(), Payment.id.desc())
    payments, pagination = paginate(query, page, limit)

    return PaymentListResponse(
        payments=[PaymentResponse.model_validate(p) for p in payments],
        pagination=pagination,
    )


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    payment = get_student_owned_in_scope(db, Payment, payment_id, scope, "Payment")
    return PaymentResponse.model_validate(payment)


@router.post("/payments", response_model=PaymentSavedResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: PaymentCreate,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    get_student_in_scope(db, data.student_id, scope)

    payment = Payment(**data.model_dump(exclude={"amount"}))
    payment.amount = Decimal(str(data.amount))
    _stamp_if_paid(payment)

    db.add(payment)
    db.commit()
    db.refresh(payment)

    logger.info("Payment %s created for student %s by %s", payment.id, payment.student_id, staff.email)
    return PaymentSavedResponse(
        message="Payment created successfully",
        payment=PaymentResponse.model_validate(payment),
    )


@router.put("/payments/{payment_id}", response_model=PaymentSavedResponse)
async def update_payment(
    payment_id: int,
    data: PaymentUpdate,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    payment = get_student_owned_in_scope(db, Payment, payment_id, scope, "Payment")
    changes = data.model_dump(exclude_unset=True)

    amount = changes.pop("amount", None)
    if amount is not None:
        payment.amount = Decimal(str(amount))

    for field, value in changes.items():
        if value is not None:
            setattr(payment, field, value)
    _stamp_if_paid(payment)

    db.commit()
    db.refresh(payment)

    return PaymentSavedResponse(
        message="Payment updated successfully",
        payment=PaymentResponse.model_validate(payment),
    )


@router.patch("/payments/{payment_id}/pay", response_model=PaymentSavedResponse)
async def mark_payment_paid(
    payment_id: int,
    data: Optional[PaymentPayRequest] = None,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    """
    Mark a payment as paid now, optionally recording the gateway and notes.
    """
    payment = get_student_owned_in_scope(db, Payment, payment_id, scope, "Payment")

    payment.status = PaymentStatus.PAID.value
    payment.paid_at = utc_now()
    if data is not None:
        if data.gateway is not None:
            payment.gateway = data.gateway
        if data.notes is not None:
            payment.notes = data.notes

    db.commit()
    db.refresh(payment)

    logger.info("Payment %s marked paid by %s", payment.id, staff.email)
    return PaymentSavedResponse(
        message="Payment marked as paid",
        payment=PaymentResponse.model_validate(payment),
    )


@router.delete("/payments/{payment_id}", response_model=MessageResponse)
async def delete_payment(
    payment_id: int,
    staff: StaffIdentity = Depends(require_staff),
    scope: Scope = Depends(get_scope),
    db: Session = Depends(get_db),
):
    payment = get_student_owned_in_scope(db, Payment, payment_id, scope, "Payment")
    db.delete(payment)
    db.commit()

    logger.info("Payment %s deleted by %s", payment_id, staff.email)
    return MessageResponse(message="Payment deleted successfully")

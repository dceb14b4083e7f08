"""
Pydantic schemas for API request/response validation.
These define the structure of data sent to and from the API.

Request bodies accept both snake_case and the camelCase keys sent by the
web frontend (e.g. ``student_id`` or ``studentId``).
"""
from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional, List
from datetime import date, datetime

from constants import (
    Role,
    STAFF_ROLES,
    MIN_PASSWORD_LENGTH,
    StudentStatus,
    TutoringStatus,
    PaymentStatus,
    EvaluationRating,
)


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _lower(value: str) -> str:
    return value.lower()


def _check_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


# Emails are login identities, compared case-insensitively
EmailField = Annotated[EmailStr, BeforeValidator(_strip), AfterValidator(_lower)]
PasswordField = Annotated[str, AfterValidator(_check_password)]

_email_adapter = TypeAdapter(EmailField)


def normalize_email(value: str) -> str:
    """
    Validate and lowercase an email outside a request body (CLI scripts).

    Raises pydantic.ValidationError when the address is malformed.
    """
    return _email_adapter.validate_python(value)


class RequestModel(BaseModel):
    """Base for request bodies: camelCase aliases, enum members stored as plain strings."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class MessageResponse(BaseModel):
    message: str


# ============================================
# Auth / Identity Schemas
# ============================================

class LoginRequest(RequestModel):
    """Credentials for POST /auth/login"""
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class IdentityResponse(BaseModel):
    """
    Public view of an authenticated identity (staff user or student).
    Theming fields are only populated for staff.
    """
    id: int
    email: Optional[str] = None
    name: Optional[str] = None
    role: Role
    phone: Optional[str] = None
    teacher_id: Optional[int] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    text_color: Optional[str] = None
    font_family: Optional[str] = None
    avatar_url: Optional[str] = None
    logo_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    """Response for a successful login"""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    token: str
    user: IdentityResponse
    expires_at: datetime = Field(..., alias="expiresAt")


class MeResponse(BaseModel):
    user: IdentityResponse


class RegisterRequest(RequestModel):
    """Admin-only creation of a staff user"""
    email: EmailField
    password: PasswordField
    name: Optional[str] = Field(None, max_length=255)
    role: str = Role.TEACHER.value

    @field_validator("role")
    @classmethod
    def check_role(cls, v: str) -> str:
        v = v.upper()
        if v not in STAFF_ROLES:
            raise ValueError(f"Invalid role. Use one of: {', '.join(STAFF_ROLES)}")
        return v


class UserCreatedResponse(BaseModel):
    message: str
    user: IdentityResponse


class ChangePasswordRequest(RequestModel):
    current_password: str = Field(..., min_length=1)
    new_password: PasswordField


class ProfileUpdate(RequestModel):
    """
    Profile changes for the current identity.
    Staff may change theming fields; students may change their phone.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailField] = None
    password: Optional[PasswordField] = None
    phone: Optional[str] = Field(None, max_length=50)
    primary_color: Optional[str] = Field(None, max_length=20)
    secondary_color: Optional[str] = Field(None, max_length=20)
    text_color: Optional[str] = Field(None, max_length=20)
    font_family: Optional[str] = Field(None, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)
    logo_url: Optional[str] = Field(None, max_length=500)


# ============================================
# Student Schemas
# ============================================

class TeacherBasic(BaseModel):
    """Minimal teacher info embedded in student responses"""
    id: int
    name: Optional[str] = None
    email: str

    model_config = ConfigDict(from_attributes=True)


class StudentBasic(BaseModel):
    """Minimal student info embedded in tutoring/payment responses"""
    id: int
    name: str
    email: Optional[str] = None
    grade: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class StudentCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailField] = None
    password: Optional[PasswordField] = None
    phone: Optional[str] = Field(None, max_length=50)
    birth_date: Optional[date] = None
    grade: Optional[str] = Field(None, max_length=50)
    school: Optional[str] = Field(None, max_length=255)
    parent_name: Optional[str] = Field(None, max_length=255)
    parent_phone: Optional[str] = Field(None, max_length=50)
    parent_email: Optional[EmailField] = None
    address: Optional[str] = Field(None, max_length=500)
    status: StudentStatus = StudentStatus.ACTIVE
    monthly_fee: Optional[float] = Field(None, ge=0)
    teacher_id: Optional[int] = Field(None, gt=0)


class StudentUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailField] = None
    password: Optional[PasswordField] = None
    phone: Optional[str] = Field(None, max_length=50)
    birth_date: Optional[date] = None
    grade: Optional[str] = Field(None, max_length=50)
    school: Optional[str] = Field(None, max_length=255)
    parent_name: Optional[str] = Field(None, max_length=255)
    parent_phone: Optional[str] = Field(None, max_length=50)
    parent_email: Optional[EmailField] = None
    address: Optional[str] = Field(None, max_length=500)
    status: Optional[StudentStatus] = None
    monthly_fee: Optional[float] = Field(None, ge=0)
    teacher_id: Optional[int] = Field(None, gt=0)


class StudentResponse(BaseModel):
    """Student response; the password hash is never included"""
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    grade: Optional[str] = None
    school: Optional[str] = None
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    parent_email: Optional[str] = None
    address: Optional[str] = None
    status: Optional[str] = None
    monthly_fee: Optional[float] = None
    teacher_id: int
    teacher: Optional[TeacherBasic] = None
    can_login: bool = False
    tutoring_count: int = 0
    payment_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StudentListResponse(BaseModel):
    students: List[StudentResponse]
    pagination: PaginationInfo


class StudentDetailResponse(StudentResponse):
    """Student with the most recent tutorings and payments"""
    tutorings: List['TutoringResponse'] = []
    payments: List['PaymentResponse'] = []


class StudentSavedResponse(BaseModel):
    message: str
    student: StudentResponse


# ============================================
# Tutoring Schemas
# ============================================

class TutoringCreate(RequestModel):
    student_id: int = Field(..., gt=0)
    subject: str = Field(..., min_length=1, max_length=255)
    topic: str = Field(..., min_length=1, max_length=255)
    plan: str = Field(..., min_length=1, max_length=100)
    next_class: Optional[datetime] = None
    status: TutoringStatus = TutoringStatus.SCHEDULED


class TutoringUpdate(RequestModel):
    subject: Optional[str] = Field(None, min_length=1, max_length=255)
    topic: Optional[str] = Field(None, min_length=1, max_length=255)
    plan: Optional[str] = Field(None, min_length=1, max_length=100)
    next_class: Optional[datetime] = None
    status: Optional[TutoringStatus] = None


class TutoringResponse(BaseModel):
    id: int
    student_id: int
    subject: str
    topic: str
    plan: str
    next_class: Optional[datetime] = None
    status: Optional[str] = None
    student: Optional[StudentBasic] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TutoringListResponse(BaseModel):
    tutorings: List[TutoringResponse]
    pagination: PaginationInfo


class TutoringSavedResponse(BaseModel):
    message: str
    tutoring: TutoringResponse


# ============================================
# Payment Schemas
# ============================================

class PaymentCreate(RequestModel):
    student_id: int = Field(..., gt=0)
    amount: float = Field(..., gt=0)
    reference: Optional[str] = Field(None, max_length=255)
    due_date: date
    status: PaymentStatus = PaymentStatus.PENDING
    paid_at: Optional[datetime] = None
    gateway: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class PaymentUpdate(RequestModel):
    amount: Optional[float] = Field(None, gt=0)
    reference: Optional[str] = Field(None, max_length=255)
    due_date: Optional[date] = None
    status: Optional[PaymentStatus] = None
    paid_at: Optional[datetime] = None
    gateway: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class PaymentPayRequest(RequestModel):
    gateway: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    student_id: int
    reference: Optional[str] = None
    amount: float
    due_date: Optional[date] = None
    status: Optional[str] = None
    paid_at: Optional[datetime] = None
    gateway: Optional[str] = None
    notes: Optional[str] = None
    student: Optional[StudentBasic] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaymentListResponse(BaseModel):
    payments: List[PaymentResponse]
    pagination: PaginationInfo


class PaymentSavedResponse(BaseModel):
    message: str
    payment: PaymentResponse


# ============================================
# Material Schemas
# ============================================

class MaterialCreate(RequestModel):
    sku: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., ge=0)
    minimum: int = Field(10, ge=0)

    @field_validator("sku")
    @classmethod
    def normalize_sku(cls, v: str) -> str:
        return v.strip().upper()


class MaterialUpdate(RequestModel):
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    quantity: Optional[int] = Field(None, ge=0)
    minimum: Optional[int] = Field(None, ge=0)

    @field_validator("sku")
    @classmethod
    def normalize_sku(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v is not None else v


class MaterialResponse(BaseModel):
    id: int
    sku: str
    name: str
    quantity: int
    minimum: int
    low_stock: bool = False
    created_by_id: Optional[int] = None
    created_by: Optional[TeacherBasic] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MaterialListResponse(BaseModel):
    materials: List[MaterialResponse]
    pagination: PaginationInfo


class MaterialSavedResponse(BaseModel):
    message: str
    material: MaterialResponse


# ============================================
# Evaluation Schemas
# ============================================

class EvaluationCreate(RequestModel):
    student_id: int = Field(..., gt=0)
    tutoring_id: Optional[int] = Field(None, gt=0)
    week_date: date
    behavior: EvaluationRating
    participation: Optional[EvaluationRating] = None
    progress: Optional[EvaluationRating] = None
    notes: Optional[str] = None


class EvaluationUpdate(RequestModel):
    week_date: Optional[date] = None
    behavior: Optional[EvaluationRating] = None
    participation: Optional[EvaluationRating] = None
    progress: Optional[EvaluationRating] = None
    notes: Optional[str] = None


class EvaluationResponse(BaseModel):
    id: int
    student_id: int
    tutoring_id: Optional[int] = None
    week_date: date
    behavior: str
    participation: Optional[str] = None
    progress: Optional[str] = None
    notes: Optional[str] = None
    student_name: Optional[str] = None
    tutoring_subject: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EvaluationListResponse(BaseModel):
    evaluations: List[EvaluationResponse]
    pagination: PaginationInfo


class EvaluationSavedResponse(BaseModel):
    message: str
    evaluation: EvaluationResponse


# Resolve forward references
StudentDetailResponse.model_rebuild()

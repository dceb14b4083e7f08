"""
SQLAlchemy models for the tutoring company database.

Identities live in two tables: staff users (admins and teachers) and students.
Login sessions reference exactly one of them.
"""
from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Text, ForeignKey, DECIMAL, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base


class User(Base):
    """
    Staff user table.
    Stores admin and teacher credentials, profile and theming preferences.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False, comment='bcrypt hash')
    name = Column(String(255))
    role = Column(String(20), nullable=False, default='TEACHER', comment='ADMIN or TEACHER')

    # Display/theming
    primary_color = Column(String(20))
    secondary_color = Column(String(20))
    text_color = Column(String(20))
    font_family = Column(String(100))
    avatar_url = Column(String(500))
    logo_url = Column(String(500))

    # Metadata
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    students = relationship("Student", back_populates="teacher")
    materials = relationship("Material", back_populates="created_by")
    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")


class Student(Base):
    """
    Student information table.
    A student may log in when a password has been set.
    """
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True)
    password = Column(String(255), comment='bcrypt hash, NULL = cannot log in')
    phone = Column(String(50))
    birth_date = Column(Date)
    grade = Column(String(50))
    school = Column(String(255))

    # Guardian
    parent_name = Column(String(255))
    parent_phone = Column(String(50))
    parent_email = Column(String(255))
    address = Column(String(500))

    status = Column(String(20), default='ACTIVE')
    monthly_fee = Column(DECIMAL(10, 2))
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Metadata
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    teacher = relationship("User", back_populates="students")
    tutorings = relationship("Tutoring", back_populates="student", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="student", cascade="all, delete-orphan")
    evaluations = relationship("Evaluation", back_populates="student", cascade="all, delete-orphan")
    sessions = relationship("AuthSession", back_populates="student", cascade="all, delete-orphan")


class AuthSession(Base):
    """
    Login session bound to a bearer token.
    Exactly one of user_id / student_id is set.
    """
    __tablename__ = "sessions"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NOT NULL AND student_id IS NULL) OR "
            "(user_id IS NULL AND student_id IS NOT NULL)",
            name="ck_sessions_single_owner",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(1024), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime, default=func.now())
    expires_at = Column(DateTime, nullable=False)

    # Relationships
    user = relationship("User", back_populates="sessions")
    student = relationship("Student", back_populates="sessions")


class Tutoring(Base):
    """
    Tutoring plan for a student: subject, topic and the next scheduled class.
    """
    __tablename__ = "tutorings"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    topic = Column(String(255), nullable=False)
    plan = Column(String(100), nullable=False, comment='e.g. pacote, avulsa')
    next_class = Column(DateTime, index=True)
    status = Column(String(20), default='SCHEDULED')

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    student = relationship("Student", back_populates="tutorings")
    evaluations = relationship("Evaluation", back_populates="tutoring")


class Payment(Base):
    """
    Payment (tuition installment) owed by a student.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    reference = Column(String(255))
    amount = Column(DECIMAL(10, 2), nullable=False)
    due_date = Column(Date, index=True)
    status = Column(String(20), default='PENDING')
    paid_at = Column(DateTime)
    gateway = Column(String(50), comment='PIX, CARTAO, CORA, ...')
    notes = Column(Text)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    student = relationship("Student", back_populates="payments")


class Material(Base):
    """
    Teaching material inventory item.
    """
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    minimum = Column(Integer, nullable=False, default=10, comment='Low-stock threshold')
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    created_by = relationship("User", back_populates="materials")


class Evaluation(Base):
    """
    Weekly evaluation of a student's behavior, participation and progress.
    """
    __tablename__ = "evaluations"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    tutoring_id = Column(Integer, ForeignKey("tutorings.id", ondelete="SET NULL"), nullable=True)
    week_date = Column(Date, nullable=False, index=True)
    behavior = Column(String(20), nullable=False)
    participation = Column(String(20))
    progress = Column(String(20))
    notes = Column(Text)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    student = relationship("Student", back_populates="evaluations")
    tutoring = relationship("Tutoring", back_populates="evaluations")

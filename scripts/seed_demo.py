#!/usr/bin/env python3
"""
Idempotent demo seed.

Ensures one admin and two teachers exist (matched by email), then creates
demo students, tutorings, materials and payments that are not there yet.
Running it twice leaves the database unchanged.

Usage:
    python scripts/seed_demo.py
    python scripts/seed_demo.py --wipe      # delete all existing data first

Demo logins:
    admin@reforcoescolar.com / 123456
    maria.silva@reforcoescolar.com / professor123
    joao.santos@reforcoescolar.com / professor123
"""

import argparse
import logging
import os
import sys
from datetime import date, datetime, timedelta
from decimal import Decimal

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from auth.passwords import hash_password
from constants import (
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    DEFAULT_TEXT_COLOR,
    DEFAULT_FONT_FAMILY,
    utc_now,
)
from database import SessionLocal, init_db
from models import AuthSession, Evaluation, Material, Payment, Student, Tutoring, User

logger = logging.getLogger("seed_demo")


def ensure_user(db, email, password, name, role):
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(
        email=email,
        password=hash_password(password),
        name=name,
        role=role,
        primary_color=DEFAULT_PRIMARY_COLOR,
        secondary_color=DEFAULT_SECONDARY_COLOR,
        text_color=DEFAULT_TEXT_COLOR,
        font_family=DEFAULT_FONT_FAMILY,
    )
    db.add(user)
    db.flush()
    logger.info("Created %s %s", role, email)
    return user


def ensure_material(db, sku, name, quantity, minimum, created_by):
    material = db.query(Material).filter(Material.sku == sku).first()
    if material is None:
        material = Material(sku=sku, created_by_id=created_by.id)
        db.add(material)
    material.name = name
    material.quantity = quantity
    material.minimum = minimum
    return material


def ensure_student(db, name, teacher, email, phone, grade, monthly_fee="149.90"):
    student = db.query(Student).filter(Student.name == name, Student.teacher_id == teacher.id).first()
    if student:
        return student
    student = Student(
        name=name,
        email=email,
        phone=phone,
        grade=grade,
        status="ACTIVE",
        monthly_fee=Decimal(monthly_fee),
        teacher_id=teacher.id,
    )
    db.add(student)
    db.flush()
    return student


def ensure_tutoring(db, student, subject, topic, plan, status="SCHEDULED", days_ahead=1):
    tutoring = db.query(Tutoring).filter(
        Tutoring.student_id == student.id,
        Tutoring.subject == subject,
        Tutoring.topic == topic,
    ).first()
    if tutoring:
        return tutoring
    tutoring = Tutoring(
        student_id=student.id,
        subject=subject,
        topic=topic,
        plan=plan,
        status=status,
        next_class=utc_now() + timedelta(days=days_ahead),
    )
    db.add(tutoring)
    return tutoring


def ensure_payment(db, student, reference, amount, due_date, status="PENDING", paid_at=None, gateway="PIX"):
    payment = db.query(Payment).filter(
        Payment.student_id == student.id,
        Payment.reference == reference,
    ).first()
    if payment:
        return payment
    payment = Payment(
        student_id=student.id,
        reference=reference,
        amount=Decimal(amount),
        due_date=due_date,
        status=status,
        paid_at=paid_at,
        gateway=gateway,
    )
    db.add(payment)
    return payment


def wipe(db):
    # Children before parents
    for model in (AuthSession, Evaluation, Payment, Tutoring, Material, Student, User):
        db.query(model).delete(synchronize_session=False)
    db.commit()
    logger.info("Existing data removed")


def seed(db):
    admin = ensure_user(db, "admin@reforcoescolar.com", "123456", "Administrador", "ADMIN")
    maria = ensure_user(db, "maria.silva@reforcoescolar.com", "professor123", "Maria Silva", "TEACHER")
    joao = ensure_user(db, "joao.santos@reforcoescolar.com", "professor123", "João Santos", "TEACHER")

    ensure_material(db, "MAT001", "Caderno de Exercícios - Matemática", 50, 10, admin)
    ensure_material(db, "HIS001", "Livro de História - Ensino Médio", 30, 5, admin)
    ensure_material(db, "CIE001", "Kit de Experimentos - Ciências", 15, 3, admin)
    ensure_material(db, "POR001", "Apostila de Português", 25, 8, admin)

    ana = ensure_student(db, "Ana Silva", maria, "ana.silva@email.com", "(11) 99999-1111", "9º Ano")
    pedro = ensure_student(db, "Pedro Santos", maria, "pedro.santos@email.com", "(11) 99999-2222", "2º Ano EM")
    sofia = ensure_student(db, "Sofia Mendes", joao, "sofia.mendes@email.com", "(11) 99999-3333", "7º Ano")
    lucas = ensure_student(db, "Lucas Ferreira", joao, "lucas.ferreira@email.com", "(11) 99999-4444", "1º Ano EM")

    ensure_tutoring(db, ana, "Matemática", "Equações do primeiro grau", "pacote", "SCHEDULED", 1)
    ensure_tutoring(db, pedro, "História", "Revolução Industrial", "avulsa", "COMPLETED", 2)
    ensure_tutoring(db, sofia, "Ciências", "Fotossíntese", "pacote", "SCHEDULED", 3)
    ensure_tutoring(db, lucas, "Português", "Interpretação de texto", "avulsa", "SCHEDULED", 4)

    ensure_payment(db, ana, "Mensalidade Janeiro 2024", "200.00", date(2024, 1, 10), "PAID", datetime(2024, 1, 8))
    ensure_payment(db, ana, "Mensalidade Fevereiro 2024", "200.00", date(2024, 2, 10))
    ensure_payment(db, pedro, "Mensalidade Janeiro 2024", "250.00", date(2024, 1, 10), "PAID",
                   datetime(2024, 1, 9), "CARTAO")
    ensure_payment(db, sofia, "Mensalidade Janeiro 2024", "180.00", date(2024, 1, 10), "OVERDUE")
    ensure_payment(db, lucas, "Mensalidade Janeiro 2024", "300.00", date(2024, 1, 10))

    db.commit()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed demo data (idempotent)")
    parser.add_argument("--wipe", action="store_true", help="Delete all existing data before seeding")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    init_db()
    db = SessionLocal()
    try:
        if args.wipe:
            wipe(db)
        seed(db)
        logger.info("Demo seed complete")
        return 0
    except Exception:
        db.rollback()
        logger.exception("Demo seed failed")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())

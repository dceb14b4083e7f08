#!/usr/bin/env python3
"""
Create a staff user (admin or teacher) from the command line.

Useful for bootstrapping the first admin, since registration through the API
requires an admin token.

Usage:
    python scripts/create_user.py --email admin@example.com --password s3cret! --name "Admin" --role ADMIN

Email and password fall back to ADMIN_EMAIL / ADMIN_PASSWORD from the
environment (or .env) when not given.
"""

import argparse
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv()

from auth.passwords import hash_password
from constants import (
    STAFF_ROLES,
    MIN_PASSWORD_LENGTH,
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    DEFAULT_TEXT_COLOR,
    DEFAULT_FONT_FAMILY,
)
from database import SessionLocal, init_db
from models import User
from schemas import normalize_email
from services.accounts import email_in_use


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create an admin or teacher account")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL"), help="Login email (default: $ADMIN_EMAIL)")
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"), help="Password (default: $ADMIN_PASSWORD)")
    parser.add_argument("--name", default="Administrator", help="Display name")
    parser.add_argument("--role", default="ADMIN", help=f"One of: {', '.join(STAFF_ROLES)}")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    role = args.role.upper()

    try:
        email = normalize_email(args.email or "")
    except ValidationError:
        print("Error: a valid --email (or ADMIN_EMAIL) is required.")
        return 1
    if not args.password or len(args.password) < MIN_PASSWORD_LENGTH:
        print(f"Error: --password (or ADMIN_PASSWORD) must be at least {MIN_PASSWORD_LENGTH} characters.")
        return 1
    if role not in STAFF_ROLES:
        print(f"Error: --role must be one of {', '.join(STAFF_ROLES)}.")
        return 1

    init_db()
    db = SessionLocal()
    try:
        if email_in_use(db, email):
            print(f"Error: {email} is already in use.")
            return 1

        user = User(
            email=email,
            password=hash_password(args.password),
            name=args.name,
            role=role,
            primary_color=DEFAULT_PRIMARY_COLOR,
            secondary_color=DEFAULT_SECONDARY_COLOR,
            text_color=DEFAULT_TEXT_COLOR,
            font_family=DEFAULT_FONT_FAMILY,
        )
        db.add(user)
        db.commit()
        print(f"Created {role} {email} (id {user.id})")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())

"""
Authentication router: login, logout, current identity, staff registration,
password change and profile updates.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_db
from models import User, Student
from auth.dependencies import get_current_identity, require_admin
from auth.identity import Identity, StaffIdentity, account_to_response, identity_to_response, user_to_response
from auth.passwords import hash_password_async, verify_password_async
from auth.sessions import issue_session, delete_session
from constants import DEFAULT_PRIMARY_COLOR, DEFAULT_SECONDARY_COLOR, DEFAULT_TEXT_COLOR, DEFAULT_FONT_FAMILY
from schemas import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    UserCreatedResponse,
    ChangePasswordRequest,
    ProfileUpdate,
)
from services.accounts import authenticate, email_in_use
from utils.rate_limiter import rate_limit

router = APIRouter()
logger = logging.getLogger(__name__)

STAFF_PROFILE_FIELDS = (
    "name", "primary_color", "secondary_color", "text_color",
    "font_family", "avatar_url", "logo_url",
)
STUDENT_PROFILE_FIELDS = ("name", "phone")


@router.post("/auth/login", response_model=LoginResponse, dependencies=[Depends(rate_limit("auth_login"))])
async def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Exchange email and password for a bearer token.

    Staff users are matched first, then students with a password set.
    Each successful call creates a new, independent session.
    """
    account = await authenticate(db, credentials.email, credentials.password)
    if account is None:
        logger.warning("Failed login for %s", credentials.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token, session = issue_session(db, account)
    user = account_to_response(account)
    logger.info("Login successful for %s (%s)", account.email, user.role.value)

    return LoginResponse(
        message="Login successful",
        token=token,
        user=user,
        expires_at=session.expires_at,
    )


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    End the caller's session. The token stops working immediately.
    """
    delete_session(db, identity.session_id)
    logger.info("Session %s closed by %s", identity.session_id, identity.email)
    return MessageResponse(message="Logged out successfully")


@router.get("/auth/me", response_model=MeResponse)
async def get_current_identity_info(
    identity: Identity = Depends(get_current_identity),
):
    """
    Get the authenticated identity.

    Students are reported with role STUDENT even though the students table
    has no role column.
    """
    return MeResponse(user=identity_to_response(identity))


@router.post("/auth/register", response_model=UserCreatedResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    admin: StaffIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Create a staff user (admin or teacher). Admin only.
    """
    if email_in_use(db, data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already in use",
        )

    user = User(
        email=data.email,
        password=await hash_password_async(data.password),
        name=data.name,
        role=data.role,
        primary_color=DEFAULT_PRIMARY_COLOR,
        secondary_color=DEFAULT_SECONDARY_COLOR,
        text_color=DEFAULT_TEXT_COLOR,
        font_family=DEFAULT_FONT_FAMILY,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User %s (%s) created by %s", user.email, user.role, admin.email)
    return UserCreatedResponse(message="User created successfully", user=user_to_response(user))


@router.put(
    "/auth/change-password",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit("auth_change_password"))],
)
async def change_password(
    data: ChangePasswordRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Change the caller's password. The current password must match.
    """
    account = identity.account
    if not await verify_password_async(data.current_password, account.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    account.password = await hash_password_async(data.new_password)
    db.commit()

    logger.info("Password changed for %s", identity.email)
    return MessageResponse(message="Password changed successfully")


@router.put("/auth/profile", response_model=UserCreatedResponse)
async def update_profile(
    data: ProfileUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Update the caller's own profile.

    Staff may change their name, email, theming and image URLs.
    Students may change their name, email and phone.
    Either may set a new password.
    """
    account = identity.account
    changes = data.model_dump(exclude_unset=True)

    if changes.get("email") and changes["email"] != account.email:
        is_student = isinstance(account, Student)
        if email_in_use(
            db,
            changes["email"],
            exclude_user_id=None if is_student else account.id,
            exclude_student_id=account.id if is_student else None,
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already in use",
            )
        account.email = changes["email"]

    allowed = STUDENT_PROFILE_FIELDS if isinstance(account, Student) else STAFF_PROFILE_FIELDS
    for field in allowed:
        if field in changes and changes[field] is not None:
            setattr(account, field, changes[field])

    if changes.get("password"):
        account.password = await hash_password_async(changes["password"])

    db.commit()
    db.refresh(account)

    return UserCreatedResponse(message="Profile updated successfully", user=account_to_response(account))

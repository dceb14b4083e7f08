"""
Authentication module for the tutoring management system.

Provides:
- JWT token creation and validation
- Session issuing and lookup
- Password hashing
- FastAPI dependencies for route protection and ownership scoping
"""

from .jwt_handler import create_access_token, verify_token
from .dependencies import get_current_identity, require_admin, require_staff, get_scope
from .identity import Identity, StaffIdentity, StudentIdentity
from .scope import Scope

__all__ = [
    "create_access_token",
    "verify_token",
    "get_current_identity",
    "require_admin",
    "require_staff",
    "get_scope",
    "Identity",
    "StaffIdentity",
    "StudentIdentity",
    "Scope",
]

"""Services package for backend application."""

from .accounts import email_in_use, find_account_by_email, authenticate

__all__ = [
    'email_in_use',
    'find_account_by_email',
    'authenticate',
]

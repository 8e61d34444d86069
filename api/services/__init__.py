# api/services/__init__.py
"""
API Services Package

Business logic behind the route handlers.
"""

from api.services.account_service import AccountService, get_account_service
from api.services.email_service import EmailService, get_email_service

__all__ = ["AccountService", "get_account_service", "EmailService", "get_email_service"]

"""
API Routes Package
"""

from api.routes import accounts
from api.routes import emails

__all__ = ["accounts", "emails"]

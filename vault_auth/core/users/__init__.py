"""
User profile module: public profile lookup and self-service profile updates.
"""

from .service import UsersService

__all__ = ["UsersService"]

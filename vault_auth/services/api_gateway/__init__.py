"""
HTTP gateway for the Vault auth service.
"""

from .main import create_app

__all__ = ["create_app"]

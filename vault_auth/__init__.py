"""
Vault auth service: password login, signed access tokens and single-use
refresh tokens.
"""

__version__ = "1.0.0"

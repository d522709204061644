# teamboard/auth/__init__.py
"""
Authentication modules for Teamboard.

This package contains:
- identity.py: Identity claim embedded in access and refresh tokens
"""
from teamboard.auth.identity import IdentityClaim

__all__ = ["IdentityClaim"]

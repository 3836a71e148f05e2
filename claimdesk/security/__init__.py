"""Security utilities for claimdesk.

Provides:
- Password hashing and verification for stored user credentials
"""

from .passwords import hash_password, verify_password

__all__ = ["hash_password", "verify_password"]

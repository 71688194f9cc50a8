"""
Identity Core - Authentication, sessions and user management.
"""

from coachdesk.kernel.identity.password import PasswordHasher, verify_password, hash_password
from coachdesk.kernel.identity.jwt import (
    JWTManager,
    TokenPair,
    TokenPayload,
    get_jwt_manager,
)
from coachdesk.kernel.identity.token_store import TokenStore
from coachdesk.kernel.identity.credentials import CredentialManager
from coachdesk.kernel.identity.session_service import IdentityClaim, SessionService
from coachdesk.kernel.identity.identity_service import IdentityService

__all__ = [
    "PasswordHasher",
    "verify_password",
    "hash_password",
    "JWTManager",
    "TokenPair",
    "TokenPayload",
    "get_jwt_manager",
    "TokenStore",
    "CredentialManager",
    "IdentityClaim",
    "SessionService",
    "IdentityService",
]

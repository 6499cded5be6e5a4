"""Auth module: credential issuance, rotation, revocation and authentication."""

from moblog_auth.auth.authenticator import RequestAuthenticator
from moblog_auth.auth.context import AuthContext
from moblog_auth.auth.context import build_auth_context
from moblog_auth.auth.entities import Account
from moblog_auth.auth.entities import Identity
from moblog_auth.auth.entities import RefreshRecord
from moblog_auth.auth.entities import TokenPair
from moblog_auth.auth.errors import AuthError
from moblog_auth.auth.errors import ForbiddenError
from moblog_auth.auth.errors import UnauthorizedError
from moblog_auth.auth.issuer import CredentialIssuer
from moblog_auth.auth.rotator import RefreshOutcome
from moblog_auth.auth.rotator import RefreshRotator

__all__ = [
    "Account",
    "AuthContext",
    "AuthError",
    "CredentialIssuer",
    "ForbiddenError",
    "Identity",
    "RefreshOutcome",
    "RefreshRecord",
    "RefreshRotator",
    "RequestAuthenticator",
    "TokenPair",
    "UnauthorizedError",
    "build_auth_context",
]

"""Auth business logic for register/login/refresh/logout/me."""

from __future__ import annotations

from moblog_auth.auth.context import AuthContext
from moblog_auth.auth.entities import Account
from moblog_auth.auth.entities import Identity
from moblog_auth.auth.entities import TokenPair
from moblog_auth.auth.errors import ConflictError
from moblog_auth.auth.errors import ForbiddenError
from moblog_auth.auth.errors import UnauthorizedError
from moblog_auth.auth.errors import ValidationFailedError
from moblog_auth.auth.models import CurrentUser
from moblog_auth.auth.models import LoginRequest
from moblog_auth.auth.models import RegisterRequest
from moblog_auth.auth.repository import DuplicateAccountError
from moblog_auth.core.clock import utc_now
from moblog_auth.core.identifiers import IdentifierValidationError
from moblog_auth.core.identifiers import normalize_and_validate_email
from moblog_auth.core.identifiers import normalize_and_validate_username
from moblog_auth.core.identifiers import normalize_login_identifier
from moblog_auth.core.password import MAX_PASSWORD_LENGTH
from moblog_auth.core.password import hash_password
from moblog_auth.core.password import verify_password
from moblog_auth.core.roles import Role

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


def _validate_password(password: str, confirm_password: str) -> None:
    if password != confirm_password:
        raise ValidationFailedError("Password Do Not Match")
    if not password:
        raise ValidationFailedError("Password Is Empty")
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValidationFailedError("Password Exceeds Maximum Length")


def register_user(*, ctx: AuthContext, payload: RegisterRequest) -> tuple[Account, TokenPair]:
    """Create an account and issue its first credential pair."""
    _validate_password(payload.password, payload.confirm_password)
    try:
        username = normalize_and_validate_username(payload.username)
        email = normalize_and_validate_email(payload.email)
    except IdentifierValidationError as exc:
        raise ValidationFailedError(str(exc)) from exc

    try:
        account = ctx.accounts.create_account(
            username=username,
            email=email,
            password_hash=hash_password(payload.password),
            role=Role.USER,
            created_at=utc_now(),
        )
    except DuplicateAccountError as exc:
        raise ConflictError(f"{exc.field.capitalize()} Already Exists") from exc

    return account, ctx.issuer.issue(account)


def login_user(*, ctx: AuthContext, payload: LoginRequest) -> tuple[Account, TokenPair]:
    """Verify the password and issue a pair that supersedes any previous session."""
    if not payload.password:
        raise ValidationFailedError("Password Is Empty")
    identifier = normalize_login_identifier(payload.username_or_email)
    if not identifier:
        raise ValidationFailedError("Username Or Email Is Empty")

    account = ctx.accounts.find_by_login(identifier)
    if account is None or not verify_password(payload.password, account.password_hash):
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)
    if account.banned:
        raise ForbiddenError("Account is banned.")

    return account, ctx.issuer.issue(account)


def refresh_session(*, ctx: AuthContext, refresh_token: str | None) -> TokenPair:
    """Rotate the presented refresh token."""
    if refresh_token is None or not refresh_token.strip():
        raise UnauthorizedError("Missing refresh token")
    _, pair = ctx.rotator.rotate(refresh_token)
    return pair


def logout_session(*, ctx: AuthContext, refresh_token: str | None) -> None:
    """Revoke the presented refresh token if there is one; never fails."""
    if refresh_token:
        ctx.rotator.revoke(refresh_token)


def current_user(identity: Identity) -> CurrentUser:
    return CurrentUser(
        id=identity.user_id,
        username=identity.username,
        email=identity.email,
        roles=[role.value for role in identity.roles],
    )

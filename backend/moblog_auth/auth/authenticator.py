"""Per-request access token authentication with a live account re-check."""

from __future__ import annotations

import logging

from moblog_auth.auth.entities import Identity
from moblog_auth.auth.errors import ForbiddenError
from moblog_auth.auth.errors import UnauthorizedError
from moblog_auth.auth.repository import AccountStore
from moblog_auth.core.clock import Clock
from moblog_auth.core.clock import utc_now
from moblog_auth.core.tokens import TokenCodec
from moblog_auth.core.tokens import TokenError

logger = logging.getLogger(__name__)


class RequestAuthenticator:
    """Trusts signed claims for identity, but never for the banned flag."""

    def __init__(self, *, codec: TokenCodec, accounts: AccountStore, clock: Clock = utc_now) -> None:
        self._codec = codec
        self._accounts = accounts
        self._clock = clock

    def authenticate(self, raw_token: str) -> Identity:
        try:
            claims = self._codec.decode_access(raw_token, now=self._clock())
        except TokenError as exc:
            logger.debug("access token rejected: %s", exc)
            raise UnauthorizedError("Invalid token") from exc

        account = self._accounts.find_by_login(claims.subject)
        if account is None:
            raise UnauthorizedError("Invalid token")
        if account.id != claims.user_id:
            logger.warning(
                "access token subject mismatch claimed_id=%s actual_id=%s",
                claims.user_id,
                account.id,
            )
            raise UnauthorizedError("Invalid token subject")
        if account.banned:
            logger.info("banned account rejected user_id=%s", account.id)
            raise ForbiddenError("Account is banned.")

        return Identity(
            user_id=account.id,
            username=account.username,
            email=account.email,
            roles=(account.role,),
        )

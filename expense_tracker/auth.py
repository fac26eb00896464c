"""In-memory demo authentication.

Tokens are random UUID4 strings kept in process memory with an expiry
timestamp. Nothing is persisted: restarting the server logs everybody out.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from expense_tracker.errors import AuthError

logger = logging.getLogger(__name__)

ACCESS_TTL_SECONDS = 3600
REFRESH_TTL_SECONDS = 7 * 24 * 3600


@dataclass
class TokenEntry:
    user: dict
    expires_at: float


class TokenStore:
    def __init__(
        self,
        access_ttl: int = ACCESS_TTL_SECONDS,
        refresh_ttl: int = REFRESH_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._access: Dict[str, TokenEntry] = {}
        self._refresh: Dict[str, TokenEntry] = {}

    def login(self, email: Optional[str], password: Optional[str]) -> dict:
        """Accept any email/password pair and issue a token pair for it."""
        if not email or not password:
            raise AuthError(
                "Email and password are required",
                code="INVALID_CREDENTIALS",
                status_code=400,
            )
        user = {"id": str(uuid.uuid4()), "email": email}
        logger.info("Issued tokens for %s", email)
        return self.issue(user)

    def issue(self, user: dict) -> dict:
        access_token = str(uuid.uuid4())
        refresh_token = str(uuid.uuid4())
        now = self._clock()
        with self._lock:
            self._access[access_token] = TokenEntry(user, now + self.access_ttl)
            self._refresh[refresh_token] = TokenEntry(user, now + self.refresh_ttl)
        return {
            "accessToken": access_token,
            "refreshToken": refresh_token,
            "expiresIn": self.access_ttl,
            "user": user,
        }

    def _lookup_locked(self, table: Dict[str, TokenEntry], token: Optional[str]) -> TokenEntry:
        # Caller holds self._lock.
        if not token:
            raise AuthError("Token is missing", code="MISSING_TOKEN")
        entry = table.get(token)
        if entry is None:
            raise AuthError("Invalid token", code="INVALID_TOKEN")
        if self._clock() > entry.expires_at:
            del table[token]
            raise AuthError("Token has expired", code="TOKEN_EXPIRED")
        return entry

    def _lookup(self, table: Dict[str, TokenEntry], token: Optional[str]) -> TokenEntry:
        with self._lock:
            return self._lookup_locked(table, token)

    def validate_refresh(self, token: Optional[str]) -> TokenEntry:
        return self._lookup(self._refresh, token)

    def authenticate(self, token: Optional[str]) -> dict:
        """Return the user behind a valid access token."""
        return self._lookup(self._access, token).user

    def rotate(self, refresh_token: Optional[str]) -> dict:
        """Exchange a refresh token for a fresh token pair.

        The old token is consumed under the same lock that validates it, so
        only one of several concurrent refreshes can succeed.
        """
        with self._lock:
            entry = self._lookup_locked(self._refresh, refresh_token)
            del self._refresh[refresh_token]
        return self.issue(entry.user)

    def revoke(self, refresh_token: Optional[str]) -> bool:
        if not refresh_token:
            return False
        with self._lock:
            return self._refresh.pop(refresh_token, None) is not None

    def purge_expired(self) -> int:
        now = self._clock()
        removed = 0
        with self._lock:
            for table in (self._access, self._refresh):
                expired = [key for key, entry in table.items() if now > entry.expires_at]
                for key in expired:
                    del table[key]
                removed += len(expired)
        if removed:
            logger.debug("Purged %s expired tokens", removed)
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._refresh)

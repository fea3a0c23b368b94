from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

import httpx

logger = logging.getLogger(__name__)

REFRESH_MARGIN = timedelta(minutes=5)
DEFAULT_TOKEN_LIFETIME = timedelta(hours=3)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


class TokenStatus(str, Enum):
    NO_TOKEN = "no_token"
    VALID = "valid"
    EXPIRING_SOON = "expiring_soon"
    INVALID = "invalid"


@dataclass(frozen=True)
class TokenState:
    refresh_token: Optional[str] = None
    access_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    def status(self, now: datetime, margin: timedelta = REFRESH_MARGIN) -> TokenStatus:
        if not _present(self.access_token):
            return TokenStatus.NO_TOKEN
        # A seeded token with no known expiry is refreshed before first use
        if self.expires_at is None or self.expires_at <= now:
            return TokenStatus.INVALID
        if self.expires_at - now <= margin:
            return TokenStatus.EXPIRING_SOON
        return TokenStatus.VALID


class NetatmoTokenManager:
    """Keeps a Netatmo access token fresh using the refresh-token grant.

    The rotated refresh token is only kept in memory; a restart falls back to
    the configured one.
    """

    TOKEN_URL = "https://api.netatmo.com/oauth2/token"

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        refresh_token: Optional[str],
        access_token: Optional[str] = None,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
        source_name: str = "Netatmo",
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self.transport = transport
        self.source_name = source_name
        self._clock = clock
        self._state = TokenState(refresh_token=refresh_token, access_token=access_token)
        self._lock = asyncio.Lock()
        self._refresh_attempts = 0
        self._last_refresh_ok = False

    @property
    def state(self) -> TokenState:
        return self._state

    def set_state(self, state: TokenState) -> None:
        self._state = state

    def has_credentials(self) -> bool:
        return (
            _present(self.client_id)
            and _present(self.client_secret)
            and _present(self._state.refresh_token)
        )

    def status(self) -> TokenStatus:
        return self._state.status(self._clock())

    async def get_access_token(self) -> Optional[str]:
        """Return a token valid for at least five more minutes, or ``None``.

        Callers waiting on the lock re-check the state once they hold it, so a
        refresh completed by another task is reused instead of repeated.
        A refresh that failed while they waited is not retried either.
        """
        seen = self._refresh_attempts
        async with self._lock:
            if self.status() is TokenStatus.VALID:
                return self._state.access_token
            if self._refresh_attempts != seen:
                return self._state.access_token if self._last_refresh_ok else None
            self._refresh_attempts += 1
            self._last_refresh_ok = await self._refresh()
            if not self._last_refresh_ok:
                return None
            return self._state.access_token

    async def _refresh(self) -> bool:
        if not self.has_credentials():
            logger.warning("[%s] Cannot refresh token: missing credentials", self.source_name)
            return False
        data = {
            "grant_type": "refresh_token",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": self._state.refresh_token,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(self.TOKEN_URL, data=data)
            if not resp.is_success:
                logger.error(
                    "[%s] Token refresh failed: %s - %s", self.source_name, resp.status_code, resp.text
                )
                return False
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("[%s] Error refreshing access token: %s", self.source_name, exc)
            return False

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(access_token, str) or not _present(access_token):
            logger.error("[%s] Token refresh response carried no access_token", self.source_name)
            return False

        refresh_token = self._state.refresh_token
        rotated = payload.get("refresh_token")
        if isinstance(rotated, str) and _present(rotated):
            refresh_token = rotated
            logger.debug("[%s] Refresh token updated", self.source_name)

        lifetime = DEFAULT_TOKEN_LIFETIME
        expires_in = payload.get("expires_in")
        if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
            lifetime = timedelta(seconds=expires_in)

        self._state = replace(
            self._state,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=self._clock() + lifetime,
        )
        logger.debug(
            "[%s] Token refreshed successfully, expires at %s",
            self.source_name,
            self._state.expires_at.isoformat(),
        )
        return True

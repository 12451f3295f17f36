# accountshop/core/auth.py
import asyncio
import hmac
import json
import secrets
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from accountshop.core.config import get_settings
from accountshop.core.kv_store import KeyValueStore

settings = get_settings()

SESSION_COOKIE = "admin_session"
SESSION_KEY_PREFIX = "adminAuth:"

# auto_error=False => missing Authorization header falls through to the
# cookie lookup instead of raising.
bearer_scheme = HTTPBearer(auto_error=False)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionGuard:
    """
    Time-boxed admin session for one client.

    The session-scoped store holds {"auth_time": <epoch ms>} under
    `adminAuth:<session_id>`. A session is valid iff
    now - auth_time < timeout.
    """

    def __init__(
        self,
        store: KeyValueStore,
        session_id: str,
        timeout: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.session_id = session_id
        self.timeout = timeout
        self.clock = clock or _utcnow

    @property
    def key(self) -> str:
        return f"{SESSION_KEY_PREFIX}{self.session_id}"

    def _now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    def _elapsed(self, key: str | None = None) -> timedelta | None:
        raw = self.store.get(key or self.key)
        if raw is None:
            return None
        try:
            auth_time = int(json.loads(raw)["auth_time"])
        except (ValueError, KeyError, TypeError):
            return None
        return timedelta(milliseconds=self._now_ms() - auth_time)

    def _sweep_expired(self) -> None:
        """Drop records of other sessions that expired without a later check."""
        for key in self.store.keys(SESSION_KEY_PREFIX):
            elapsed = self._elapsed(key)
            if elapsed is None or elapsed >= self.timeout:
                self.store.delete(key)

    def start_session(self) -> None:
        self._sweep_expired()
        self.store.set(self.key, json.dumps({"auth_time": self._now_ms()}))

    def is_authenticated(self) -> bool:
        elapsed = self._elapsed()
        return elapsed is not None and elapsed < self.timeout

    def remaining_time(self) -> timedelta:
        elapsed = self._elapsed()
        if elapsed is None:
            return timedelta(0)
        return max(timedelta(0), self.timeout - elapsed)

    def validate_session(self) -> bool:
        """
        Check before every admin action.
        Clears a stale record when the session is no longer valid.
        """
        if not self.is_authenticated():
            self.end_session()
            return False
        return True

    def end_session(self) -> None:
        self.store.delete(self.key)


async def session_ticks(
    guard: SessionGuard,
    interval: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> AsyncIterator[timedelta]:
    """
    Countdown loop: yields the remaining time every `interval` seconds.

    When the remaining time reaches zero the session is ended (forced
    logout) and the loop stops after yielding 0.
    """
    while True:
        remaining = guard.remaining_time()
        if remaining <= timedelta(0):
            guard.end_session()
            yield timedelta(0)
            return
        yield remaining
        await sleep(interval)


# ----- Credentials & tokens -----


def verify_admin_password(password: str) -> bool:
    """Constant-time check against the server-side ADMIN_PASSWORD secret."""
    expected = settings.ADMIN_PASSWORD.get_secret_value()
    return hmac.compare_digest(password.encode(), expected.encode())


def new_session_id() -> str:
    return secrets.token_urlsafe(24)


def create_session_token(session_id: str) -> str:
    """
    Sign a session token carrying the session id.

    The token alone is not enough: the server-side record must still
    be present and fresh.
    """
    now = _utcnow()
    claims = {
        "sid": session_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=settings.SESSION_TIMEOUT_SECONDS)).timestamp()),
    }
    return jwt.encode(
        claims,
        settings.SESSION_SECRET.get_secret_value(),
        algorithm=settings.SESSION_ALG,
    )


def decode_session_token(token: str) -> str | None:
    """Return the session id of a valid token, else None."""
    try:
        claims = jwt.decode(
            token,
            settings.SESSION_SECRET.get_secret_value(),
            algorithms=[settings.SESSION_ALG],
        )
    except JWTError:
        return None
    sid = claims.get("sid")
    return sid if isinstance(sid, str) and sid else None


# ----- FastAPI dependencies -----


def _redirect_to_public_entry() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_303_SEE_OTHER,
        headers={"Location": settings.PUBLIC_ENTRY_URL},
    )


def get_session_guard(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> SessionGuard | None:
    """
    Resolve the caller's SessionGuard from a bearer token or the
    `admin_session` cookie. Returns None when no usable token is sent.
    """
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    sid = decode_session_token(token)
    if sid is None:
        return None
    context = request.app.state.context
    return context.session_guard(sid)


def require_admin_session(
    guard: SessionGuard | None = Depends(get_session_guard),
) -> SessionGuard:
    """
    Gate for every admin route.

    Missing, invalid or expired sessions are redirected to the public
    entry point (303) rather than answered with an error body.
    """
    if guard is None or not guard.validate_session():
        raise _redirect_to_public_entry()
    return guard

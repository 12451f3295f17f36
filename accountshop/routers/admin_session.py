# accountshop/routers/admin_session.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import StreamingResponse

from accountshop.core.auth import (
    SESSION_COOKIE,
    SessionGuard,
    create_session_token,
    get_session_guard,
    new_session_id,
    require_admin_session,
    session_ticks,
    verify_admin_password,
)
from accountshop.core.context import AppContext, get_context
from accountshop.core.formatting import format_countdown
from accountshop.core.sse import sse_event
from accountshop.schemas.session import AdminLogin, AdminSessionRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/session", tags=["Admin Session"])


def _read(guard: SessionGuard, token: str | None = None) -> AdminSessionRead:
    remaining = guard.remaining_time()
    return AdminSessionRead(
        token=token,
        remaining_seconds=int(remaining.total_seconds()),
        countdown=format_countdown(remaining),
    )


@router.post("", response_model=AdminSessionRead, status_code=status.HTTP_201_CREATED)
def login(
    payload: AdminLogin,
    response: Response,
    context: AppContext = Depends(get_context),
):
    """
    Start an admin session.

    The password is checked server-side; on success a signed token is
    returned and set as an HttpOnly cookie.
    """
    if not verify_admin_password(payload.password):
        logger.warning("Rejected admin login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password",
        )

    session_id = new_session_id()
    guard = context.session_guard(session_id)
    guard.start_session()
    token = create_session_token(session_id)

    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=context.settings.SESSION_TIMEOUT_SECONDS,
        httponly=True,
        samesite="lax",
    )
    return _read(guard, token)


@router.get("", response_model=AdminSessionRead)
def read_session(guard: SessionGuard = Depends(require_admin_session)):
    """Remaining session time (redirects when expired)."""
    return _read(guard)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    response: Response,
    guard: SessionGuard | None = Depends(get_session_guard),
):
    """End the session. Idempotent."""
    if guard is not None:
        guard.end_session()
    response.delete_cookie(SESSION_COOKIE)
    return None


@router.get("/countdown")
async def session_countdown(
    guard: SessionGuard = Depends(require_admin_session),
    context: AppContext = Depends(get_context),
):
    """
    One-second countdown as Server-Sent Events.

    Emits `tick` events until the session runs out, then a final
    `expired` event after the session has been ended.
    """

    async def events():
        async for remaining in session_ticks(guard, sleep=context.sleep):
            if remaining.total_seconds() <= 0:
                yield sse_event({"remaining_seconds": 0, "countdown": "00:00"}, event="expired")
                return
            yield sse_event(
                {
                    "remaining_seconds": int(remaining.total_seconds()),
                    "countdown": format_countdown(remaining),
                },
                event="tick",
            )

    return StreamingResponse(events(), media_type="text/event-stream")

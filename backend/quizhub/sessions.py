"""Server-side login sessions carried by a signed cookie.

The cookie holds a short JWT with the session id (`sid`) and its expiry.
The session itself (which user it belongs to) lives in `SessionStore`,
so logging out destroys it even if the client keeps the cookie.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

logger = logging.getLogger("quizhub.sessions")


@dataclass(frozen=True)
class _SessionRecord:
    user_id: int
    expires_at: datetime


class SessionStore:
    def __init__(self, secret: str, ttl_hours: int = 24, algorithm: str = "HS256"):
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = timedelta(hours=ttl_hours)
        self._sessions: dict[str, _SessionRecord] = {}
        self._lock = threading.Lock()

    @property
    def max_age_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def create(self, user_id: int) -> str:
        """Start a session for `user_id` and return the cookie token."""
        self._cleanup()
        sid = uuid.uuid4().hex
        expires_at = datetime.now(timezone.utc) + self._ttl
        with self._lock:
            self._sessions[sid] = _SessionRecord(user_id=user_id, expires_at=expires_at)
        payload = {"sid": sid, "exp": int(expires_at.timestamp())}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def resolve(self, token: Optional[str]) -> Optional[int]:
        """Return the user id of an active session, or None."""
        if not token:
            return None
        sid = self._decode_sid(token, verify_exp=True)
        if sid is None:
            return None
        with self._lock:
            record = self._sessions.get(sid)
            if record is None:
                return None
            if record.expires_at <= datetime.now(timezone.utc):
                self._sessions.pop(sid, None)
                return None
            return record.user_id

    def destroy(self, token: Optional[str]) -> bool:
        """Forget the session behind `token`. Returns True if one existed."""
        if not token:
            return False
        sid = self._decode_sid(token, verify_exp=False)
        if sid is None:
            return False
        with self._lock:
            return self._sessions.pop(sid, None) is not None

    def active_count(self) -> int:
        self._cleanup()
        with self._lock:
            return len(self._sessions)

    def _decode_sid(self, token: str, verify_exp: bool) -> Optional[str]:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": verify_exp},
            )
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            logger.info("session_token_rejected")
            return None
        sid = payload.get("sid")
        return sid if isinstance(sid, str) else None

    def _cleanup(self) -> None:
        now = datetime.now(timezone.utc)
        with self._lock:
            expired = [sid for sid, rec in self._sessions.items() if rec.expires_at <= now]
            for sid in expired:
                self._sessions.pop(sid, None)

# finzoo/services/inactivity.py
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from finzoo.core.scheduler import PeriodicTask
from finzoo.core.timeutils import as_utc, utcnow
from finzoo.repositories.activity_repo import ActivityRepository

logger = logging.getLogger(__name__)


class SessionExpired(Exception):
    """The session was ended locally (logout or idle timeout)."""


@dataclass
class _Tracked:
    user_id: uuid.UUID | None
    last_activity: datetime
    last_persisted: datetime | None
    # Last token seen for the session; kept in memory only
    access_token: str | None = None


class InactivityMonitor:
    """
    Client-side idle timeout for Supabase sessions.

    - Every authenticated request calls `record_activity`. The in-memory
      timestamp is always current; the durable row is written at most
      once per `persist_every` per session.
    - `check()` runs every `check_every` seconds and expires sessions idle
      for longer than `timeout`: persisted activity is cleared, in-memory
      state dropped, and `on_expire(session_id, access_token)` is called
      so the backend session can be invalidated.
    - `restore()` runs at startup and applies the same staleness rule to
      persisted rows before any of them is accepted again.

    This is independent of the Supabase token TTL; both layers apply.
    """

    def __init__(
        self,
        repo: ActivityRepository,
        session_factory: Callable[[], Session],
        on_expire: Callable[[str, str | None], None] | None = None,
        timeout: timedelta = timedelta(hours=1),
        persist_every: timedelta = timedelta(seconds=30),
        check_every: float = 60.0,
        expired_retention: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = repo
        self._session_factory = session_factory
        self._on_expire = on_expire
        self.timeout = timeout
        self.persist_every = persist_every
        self.expired_retention = expired_retention
        self._clock = clock

        self._lock = threading.Lock()
        self._tracked: dict[str, _Tracked] = {}
        # session id -> when it ended; older entries fall back to the durable row
        self._expired: dict[str, datetime] = {}
        self._task = PeriodicTask("inactivity-check", check_every, self.check)

    # ----- Lifecycle -----

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    async def dispose(self) -> None:
        await self._task.dispose()

    # ----- Queries -----

    def is_stale(self, last_activity: datetime, now: datetime | None = None) -> bool:
        now = now or self._clock()
        return now - as_utc(last_activity) > self.timeout

    def last_activity(self, session_id: str) -> datetime | None:
        with self._lock:
            tracked = self._tracked.get(session_id)
            return tracked.last_activity if tracked else None

    def is_expired(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._expired

    # ----- Operations -----

    def restore(self) -> list[str]:
        """
        Load persisted activity. Stale sessions are expired here, before
        a request can resume them.

        Returns:
            Session ids expired at load time.
        """
        now = self._clock()
        with self._session_factory() as db:
            rows = self.repo.list_active(db)

        expired: list[str] = []
        for row in rows:
            if row.last_activity is None:
                continue
            last = as_utc(row.last_activity)
            if self.is_stale(last, now):
                self._expire(row.session_id, now, access_token=None)
                expired.append(row.session_id)
            else:
                with self._lock:
                    self._tracked[row.session_id] = _Tracked(
                        user_id=row.user_id,
                        last_activity=last,
                        last_persisted=last,
                    )

        if expired:
            logger.info("Expired %d idle session(s) at startup", len(expired))
        return expired

    def ensure_active(self, session_id: str) -> None:
        """
        Refuse a session that was ended or has been idle too long.

        Sessions this process has not seen yet are looked up in the
        durable store first.

        Raises:
            SessionExpired
        """
        now = self._clock()
        with self._lock:
            if session_id in self._expired:
                raise SessionExpired(session_id)
            tracked = self._tracked.get(session_id)

        if tracked is None:
            self._load(session_id, now)
            return

        if self.is_stale(tracked.last_activity, now):
            self._expire(session_id, now, tracked.access_token)
            raise SessionExpired(session_id)

    def record_activity(
        self,
        session_id: str,
        user_id: uuid.UUID | None = None,
        access_token: str | None = None,
    ) -> datetime:
        """Mark the session as active now. Returns the activity timestamp."""
        now = self._clock()
        with self._lock:
            tracked = self._tracked.get(session_id)
            if tracked is None:
                tracked = _Tracked(user_id=user_id, last_activity=now, last_persisted=None)
                self._tracked[session_id] = tracked
            tracked.last_activity = now
            if user_id is not None:
                tracked.user_id = user_id
            if access_token is not None:
                tracked.access_token = access_token

            persist = (
                tracked.last_persisted is None
                or now - tracked.last_persisted >= self.persist_every
            )
            if persist:
                tracked.last_persisted = now

        if persist:
            try:
                with self._session_factory() as db:
                    self.repo.save_activity(db, session_id, tracked.user_id, now)
            except SQLAlchemyError:
                logger.exception("Could not persist activity for session %s", session_id)
        return now

    def check(self) -> list[str]:
        """
        One periodic pass. Returns the session ids that were expired.

        Ended sessions older than `expired_retention` are forgotten here;
        `ensure_active` still refuses them through their `expired_at` row.
        """
        now = self._clock()
        with self._lock:
            self._expired = {
                session_id: ended
                for session_id, ended in self._expired.items()
                if now - ended <= self.expired_retention
            }
            stale = [
                (session_id, tracked.access_token)
                for session_id, tracked in self._tracked.items()
                if self.is_stale(tracked.last_activity, now)
            ]

        for session_id, token in stale:
            self._expire(session_id, now, token)
        return [session_id for session_id, _ in stale]

    def end(self, session_id: str) -> None:
        """Explicit logout; the caller already signed the backend session out."""
        self._expire(session_id, self._clock(), access_token=None, notify=False)

    # ----- Internals -----

    def _load(self, session_id: str, now: datetime) -> None:
        try:
            with self._session_factory() as db:
                row = self.repo.get(db, session_id)
        except SQLAlchemyError:
            logger.exception("Could not read activity for session %s", session_id)
            return

        if row is None:
            return
        if row.expired_at is not None:
            with self._lock:
                self._expired[session_id] = now
            raise SessionExpired(session_id)
        if row.last_activity is not None and self.is_stale(row.last_activity, now):
            self._expire(session_id, now, access_token=None)
            raise SessionExpired(session_id)
        if row.last_activity is not None:
            last = as_utc(row.last_activity)
            with self._lock:
                self._tracked.setdefault(
                    session_id,
                    _Tracked(user_id=row.user_id, last_activity=last, last_persisted=last),
                )

    def _expire(
        self,
        session_id: str,
        now: datetime,
        access_token: str | None,
        notify: bool = True,
    ) -> None:
        with self._lock:
            self._tracked.pop(session_id, None)
            self._expired[session_id] = now

        try:
            with self._session_factory() as db:
                self.repo.mark_expired(db, session_id, now)
        except SQLAlchemyError:
            logger.exception("Could not clear activity for session %s", session_id)

        if notify:
            logger.warning("Session %s expired after inactivity", session_id)
            if self._on_expire is not None:
                try:
                    self._on_expire(session_id, access_token)
                except Exception:
                    logger.exception("Backend sign-out failed for session %s", session_id)

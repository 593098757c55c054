from __future__ import annotations

from datetime import datetime, timedelta
import logging
from threading import Event, Lock, Thread
from typing import Callable

from sqlalchemy.orm import Session

from roomguard.core.config import Settings, get_settings
from roomguard.services.lifecycle import auto_reject_expired_pending, refresh_reservation_statuses
from roomguard.services.time_intervals import local_now

logger = logging.getLogger(__name__)


def seconds_until_hour(now: datetime, hour: int) -> float:
    """Seconds from ``now`` until the next occurrence of ``hour``:00 in the same timezone."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class SweepScheduler:
    """Runs the daily auto-reject and the periodic status refresh on daemon threads.

    Each run opens its own session; nothing is shared with request handling
    except the database itself.
    """

    def __init__(self, session_factory: Callable[[], Session], settings: Settings | None = None) -> None:
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self._stop = Event()
        self._lock = Lock()
        self._threads: list[Thread] = []

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop.clear()
            self._threads = [
                Thread(target=self._auto_reject_loop, name="roomguard-auto-reject", daemon=True),
                Thread(target=self._status_refresh_loop, name="roomguard-status-refresh", daemon=True),
            ]
            for thread in self._threads:
                thread.start()
        logger.info(
            "Sweep scheduler started (auto-reject at %02d:00, status refresh every %ss)",
            self.settings.auto_reject_hour,
            self.settings.status_refresh_interval_seconds,
        )

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        with self._lock:
            for thread in self._threads:
                thread.join(timeout)
            self._threads = []
        logger.info("Sweep scheduler stopped")

    def run_auto_reject_once(self) -> None:
        db = self.session_factory()
        try:
            result = auto_reject_expired_pending(db, local_now(self.settings).date())
            logger.info(
                "Scheduled auto-reject: %s rejected, %s errors, %s found",
                result.rejected_count,
                result.error_count,
                result.total_found,
            )
        except Exception:
            db.rollback()
            logger.exception("Scheduled auto-reject failed")
        finally:
            db.close()

    def run_status_refresh_once(self) -> None:
        db = self.session_factory()
        try:
            refresh_reservation_statuses(db, local_now(self.settings))
        except Exception:
            db.rollback()
            logger.exception("Scheduled status refresh failed")
        finally:
            db.close()

    def _auto_reject_loop(self) -> None:
        while True:
            delay = seconds_until_hour(local_now(self.settings), self.settings.auto_reject_hour)
            if self._stop.wait(delay):
                return
            self.run_auto_reject_once()

    def _status_refresh_loop(self) -> None:
        interval = max(1, self.settings.status_refresh_interval_seconds)
        while not self._stop.is_set():
            self.run_status_refresh_once()
            if self._stop.wait(interval):
                return

"""Escalation scheduler.

Owns one cancellable one-shot timer per active emergency, backed by an
APScheduler ``DateTrigger`` job. Other components only ``arm`` and
``cancel``; the timer table itself is private.

Timer states: ARMED -> FIRED or ARMED -> CANCELLED. When a job runs it
removes its table entry before awaiting the fire callback, so from that
moment ``cancel`` returns False and the escalation runs to completion.
A job that finds its entry already gone was cancelled first and exits.
"""

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from hazardwatch.core.alerting.enums import TimerState
from hazardwatch.core.alerting.models import Emergency
from hazardwatch.logging_config import bind_alert_id, get_logger

logger = get_logger(__name__)

FireCallback = Callable[[Emergency], Awaitable[None]]


@dataclass(frozen=True)
class ArmedTimer:
    """An armed escalation timer.

    ``emergency`` is the value captured at arm time and is what the
    fire callback receives.
    """

    emergency: Emergency
    job_id: str
    deadline: datetime
    armed_monotonic: float
    delay_seconds: float


class EscalationScheduler:
    """Per-emergency escalation timers."""

    def __init__(
        self,
        on_fire: FireCallback,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._on_fire = on_fire
        self._scheduler = scheduler
        self._armed: dict[str, ArmedTimer] = {}
        self._states: dict[str, TimerState] = {}
        # APScheduler 3.11 defers AsyncIOScheduler.shutdown to a later loop tick
        self._stopped = False

    @property
    def running(self) -> bool:
        if self._stopped or self._scheduler is None:
            return False
        return self._scheduler.running

    def start(self) -> None:
        """Start the underlying APScheduler on the running event loop."""
        self._stopped = False
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(
                event_loop=asyncio.get_running_loop(),
                timezone=UTC,
            )
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Escalation scheduler started")

    def shutdown(self) -> None:
        """Cancel every armed timer and stop the underlying scheduler."""
        already_stopped = self._stopped
        self._stopped = True
        for emergency_id in list(self._armed):
            self.cancel(emergency_id)
        if already_stopped or self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Escalation scheduler stopped")

    def arm(self, emergency: Emergency, delay_seconds: float) -> bool:
        """Arm the escalation timer for ``emergency``.

        Idempotent: arming an id that already has a timer does nothing.

        Args:
            emergency: Emergency value handed to the fire callback.
            delay_seconds: Seconds until the timer fires.

        Returns:
            True if a new timer was armed, False if one already existed.

        Raises:
            ValueError: If ``delay_seconds`` is not positive.
            RuntimeError: If the scheduler has not been started.
        """
        if delay_seconds <= 0:
            raise ValueError(f"Escalation delay must be positive (got {delay_seconds})")
        if not self.running:
            raise RuntimeError("Escalation scheduler is not running")

        if emergency.id in self._armed:
            logger.debug("Escalation timer already armed", emergency_id=emergency.id)
            return False

        deadline = datetime.now(UTC) + timedelta(seconds=delay_seconds)
        # Unique per arm so a stale job can never act on a later timer
        job_id = f"escalation:{emergency.id}:{uuid.uuid4().hex}"

        self._scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=deadline, timezone=UTC),
            args=[emergency.id, job_id],
            id=job_id,
            misfire_grace_time=None,
        )
        self._armed[emergency.id] = ArmedTimer(
            emergency=emergency,
            job_id=job_id,
            deadline=deadline,
            armed_monotonic=time.monotonic(),
            delay_seconds=delay_seconds,
        )
        self._states[emergency.id] = TimerState.ARMED

        logger.info(
            "Escalation timer armed",
            emergency_id=emergency.id,
            delay_seconds=delay_seconds,
            deadline=deadline.isoformat(),
        )
        return True

    def cancel(self, emergency_id: str) -> bool:
        """Cancel the armed timer for ``emergency_id``.

        Returns:
            True if a timer was cancelled, False if none was armed
            (never armed, already cancelled, or already fired).
        """
        timer = self._armed.pop(emergency_id, None)
        if timer is None:
            return False

        try:
            self._scheduler.remove_job(timer.job_id)
        except JobLookupError:
            # Job already handed to the executor; _fire finds no entry and exits
            pass

        self._states[emergency_id] = TimerState.CANCELLED
        logger.info(
            "Escalation timer cancelled",
            emergency_id=emergency_id,
            elapsed_seconds=round(time.monotonic() - timer.armed_monotonic, 3),
        )
        return True

    def is_armed(self, emergency_id: str) -> bool:
        return emergency_id in self._armed

    def state(self, emergency_id: str) -> TimerState | None:
        """Last known timer state for a tracked id, or None."""
        return self._states.get(emergency_id)

    def forget(self, emergency_id: str) -> None:
        """Drop the recorded timer state of an emergency that has ended."""
        self._states.pop(emergency_id, None)

    def armed_timer(self, emergency_id: str) -> ArmedTimer | None:
        return self._armed.get(emergency_id)

    @property
    def armed_count(self) -> int:
        return len(self._armed)

    async def _fire(self, emergency_id: str, job_id: str) -> None:
        timer = self._armed.get(emergency_id)
        if timer is None or timer.job_id != job_id:
            logger.debug("Escalation timer no longer armed", emergency_id=emergency_id)
            return

        del self._armed[emergency_id]
        self._states[emergency_id] = TimerState.FIRED

        with bind_alert_id(emergency_id):
            logger.info(
                "Escalation timer fired",
                emergency_id=emergency_id,
                elapsed_seconds=round(time.monotonic() - timer.armed_monotonic, 3),
            )
            try:
                await self._on_fire(timer.emergency)
            except Exception:
                logger.exception(
                    "Escalation callback failed",
                    emergency_id=emergency_id,
                )

"""
Escalation tracking for repeat offenders.

Each infraction adds a warning for the author. Once a user collects
``warning_threshold`` warnings inside the warning window a tier-2 timeout is
due and the warning list starts over. Each applied tier-2 timeout is recorded
in turn, and ``timeout_threshold`` of them inside the timeout window make a
tier-3 suspension (with a staff alert) due.

State lives in an :class:`EscalationStateStore` keyed by ``(guild_id, user_id)``.
The store is in-process only: counters start from zero after a restart, the
durable case log is the permanent record. Read-modify-write on one key is
serialized by a per-key lock; different users never wait on each other.

Timestamps are plain epoch seconds from an injectable clock so the windows can
be exercised in tests without sleeping.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict, List, Tuple

from guardbot.util.logger import get_logger

logger = get_logger("escalation")

StateKey = Tuple[int, int]
Clock = Callable[[], float]


@dataclass(frozen=True)
class EscalationPolicy:
    """Escalation thresholds, windows and durations.

    ``reset_warnings_on_failed_timeout`` keeps the historical behavior of
    clearing a user's warnings as soon as a timeout is due, even when the
    timeout itself cannot be applied. Set it to False to keep the warnings
    until a timeout actually lands.
    """

    warning_window: timedelta = timedelta(hours=1)
    warning_threshold: int = 3
    timeout_duration: timedelta = timedelta(hours=6)
    timeout_window: timedelta = timedelta(days=30)
    timeout_threshold: int = 5
    suspension_duration: timedelta = timedelta(days=7)
    reset_warnings_on_failed_timeout: bool = True

    def __post_init__(self) -> None:
        if self.warning_threshold < 1 or self.timeout_threshold < 1:
            raise ValueError("Escalation thresholds must be at least 1")
        for name in ("warning_window", "timeout_duration", "timeout_window", "suspension_duration"):
            if getattr(self, name) <= timedelta(0):
                raise ValueError(f"{name} must be positive")


@dataclass(frozen=True, slots=True)
class WarningOutcome:
    """Result of recording one infraction."""

    warning_count: int
    timeout_due: bool


@dataclass(frozen=True, slots=True)
class TimeoutOutcome:
    """Result of reporting a tier-2 timeout attempt."""

    timeout_count: int
    suspension_due: bool
    warnings_reset: bool


class EscalationStateStore:
    """In-process warning and timeout timestamps per ``(guild_id, user_id)``."""

    def __init__(self) -> None:
        self._warnings: Dict[StateKey, List[float]] = {}
        self._timeouts: Dict[StateKey, List[float]] = {}
        self._locks: Dict[StateKey, asyncio.Lock] = {}

    def lock(self, key: StateKey) -> asyncio.Lock:
        """Return the lock serializing updates for ``key``, creating it on first use."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def get_warnings(self, key: StateKey) -> List[float]:
        return list(self._warnings.get(key, ()))

    def set_warnings(self, key: StateKey, stamps: List[float]) -> None:
        self._warnings[key] = list(stamps)

    def get_timeouts(self, key: StateKey) -> List[float]:
        return list(self._timeouts.get(key, ()))

    def set_timeouts(self, key: StateKey, stamps: List[float]) -> None:
        self._timeouts[key] = list(stamps)

    def tracked_users(self) -> int:
        return len(self._warnings.keys() | self._timeouts.keys())


def prune(stamps: List[float], now: float, window: timedelta) -> List[float]:
    """
    Drop timestamps that fell out of a sliding window.

    Args:
        stamps (List[float]): Epoch-second timestamps, oldest first.
        now (float): The current epoch time.
        window (timedelta): Window length; a stamp exactly ``window`` old is kept.

    Returns:
        List[float]: The timestamps still inside the window.
    """
    horizon = now - window.total_seconds()
    return [stamp for stamp in stamps if stamp >= horizon]


class EscalationTracker:
    """Sliding-window warning/timeout counters deciding when to escalate."""

    def __init__(
        self,
        policy: EscalationPolicy | None = None,
        store: EscalationStateStore | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.policy = policy or EscalationPolicy()
        self.store = store or EscalationStateStore()
        self.clock = clock

    async def record_infraction(self, guild_id: int, user_id: int) -> WarningOutcome:
        """
        Add a warning for the user and report whether a tier-2 timeout is due.

        When the timeout is due and the policy resets on failure, the warning
        list is emptied here, before any platform call is made.

        Args:
            guild_id (int): Guild the infraction happened in.
            user_id (int): The offending user.

        Returns:
            WarningOutcome: Warnings inside the window, including this one, and
            whether the threshold was reached.
        """
        key = (guild_id, user_id)
        async with self.store.lock(key):
            now = self.clock()
            stamps = prune(self.store.get_warnings(key), now, self.policy.warning_window)
            stamps.append(now)
            count = len(stamps)
            timeout_due = count >= self.policy.warning_threshold
            if timeout_due and self.policy.reset_warnings_on_failed_timeout:
                stamps = []
            self.store.set_warnings(key, stamps)

        logger.debug(
            "[ESCALATION] User %s in guild %s has %d warning(s) in window (timeout due: %s)",
            user_id, guild_id, count, timeout_due,
        )
        return WarningOutcome(warning_count=count, timeout_due=timeout_due)

    async def record_timeout(self, guild_id: int, user_id: int, *, applied: bool) -> TimeoutOutcome:
        """
        Report the result of a tier-2 timeout and decide on a tier-3 suspension.

        Only applied timeouts are added to the timeout history, and a failed
        timeout never makes a suspension due.

        Args:
            guild_id (int): Guild the timeout was attempted in.
            user_id (int): The timed-out user.
            applied (bool): Whether the platform accepted the timeout.

        Returns:
            TimeoutOutcome: Applied timeouts inside the window, whether a
            suspension is due and whether the warnings were reset.
        """
        key = (guild_id, user_id)
        async with self.store.lock(key):
            warnings_reset = self.policy.reset_warnings_on_failed_timeout
            if applied and not warnings_reset:
                self.store.set_warnings(key, [])
                warnings_reset = True

            now = self.clock()
            stamps = prune(self.store.get_timeouts(key), now, self.policy.timeout_window)
            if applied:
                stamps.append(now)
            self.store.set_timeouts(key, stamps)
            count = len(stamps)

        if not applied:
            logger.warning(
                "[ESCALATION] Timeout for user %s in guild %s was not applied (warnings reset: %s)",
                user_id, guild_id, warnings_reset,
            )
            return TimeoutOutcome(timeout_count=count, suspension_due=False, warnings_reset=warnings_reset)

        suspension_due = count >= self.policy.timeout_threshold
        logger.info(
            "[ESCALATION] User %s in guild %s has %d timeout(s) in window (suspension due: %s)",
            user_id, guild_id, count, suspension_due,
        )
        return TimeoutOutcome(timeout_count=count, suspension_due=suspension_due, warnings_reset=warnings_reset)

    def warning_count(self, guild_id: int, user_id: int) -> int:
        """Warnings currently inside the window, without mutating state."""
        stamps = self.store.get_warnings((guild_id, user_id))
        return len(prune(stamps, self.clock(), self.policy.warning_window))

    def timeout_count(self, guild_id: int, user_id: int) -> int:
        """Applied timeouts currently inside the window, without mutating state."""
        stamps = self.store.get_timeouts((guild_id, user_id))
        return len(prune(stamps, self.clock(), self.policy.timeout_window))

import time
from typing import Callable, Dict, Optional

import structlog
from pydantic import BaseModel

from ..config import settings


logger = structlog.get_logger("shapefit")

DAY_SECONDS = 24 * 60 * 60
PRUNE_INTERVAL_SECONDS = 60.0


class QuotaCheck(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    remaining_minute: Optional[int] = None
    remaining_day: Optional[int] = None
    wait_seconds: float = 0.0


class _Window(BaseModel):
    minute_count: int = 0
    day_count: int = 0
    minute_reset: float
    day_reset: float


def _next_utc_midnight(now: float) -> float:
    return (now // DAY_SECONDS + 1) * DAY_SECONDS


class AIQuota:
    """
    Per-shop AI call budget with a fixed one-minute window and a calendar-day
    window (reset at midnight UTC).

    Callers check before the provider call and record after it; `try_acquire`
    does both. Nothing here waits: a refused call is the caller's signal to use
    the scoring algorithm or to answer 429.
    """

    def __init__(
        self,
        requests_per_minute: int | None = None,
        requests_per_day: int | None = None,
        enabled: bool | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.requests_per_minute = requests_per_minute or settings.ai_requests_per_minute
        self.requests_per_day = requests_per_day or settings.ai_requests_per_day
        self.enabled = settings.ai_rate_limiting if enabled is None else enabled
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._last_prune = 0.0

    def _window(self, shop: str, now: float) -> _Window:
        if now - self._last_prune >= PRUNE_INTERVAL_SECONDS:
            self._prune(now)

        window = self._windows.get(shop)
        if window is None:
            window = _Window(minute_reset=now + 60, day_reset=_next_utc_midnight(now))
            self._windows[shop] = window
            return window
        if now >= window.minute_reset:
            window.minute_count = 0
            window.minute_reset = now + 60
        if now >= window.day_reset:
            window.day_count = 0
            window.day_reset = _next_utc_midnight(now)
        return window

    def _prune(self, now: float) -> None:
        # a window whose minute and day have both rolled over holds no usage
        stale = [shop for shop, w in self._windows.items() if now >= w.minute_reset and now >= w.day_reset]
        for shop in stale:
            del self._windows[shop]
        self._last_prune = now

    def check(self, shop: str) -> QuotaCheck:
        if not self.enabled:
            return QuotaCheck(allowed=True)

        now = self._clock()
        w = self._window(shop, now)
        remaining_minute = max(0, self.requests_per_minute - w.minute_count)
        remaining_day = max(0, self.requests_per_day - w.day_count)

        if remaining_day == 0:
            return QuotaCheck(
                allowed=False,
                reason=f"Daily limit reached: {w.day_count}/{self.requests_per_day} requests today",
                remaining_minute=remaining_minute,
                remaining_day=0,
                wait_seconds=max(0.0, w.day_reset - now),
            )
        if remaining_minute == 0:
            return QuotaCheck(
                allowed=False,
                reason=f"Rate limit reached: {w.minute_count}/{self.requests_per_minute} requests per minute",
                remaining_minute=0,
                remaining_day=remaining_day,
                wait_seconds=max(0.0, w.minute_reset - now),
            )
        return QuotaCheck(allowed=True, remaining_minute=remaining_minute, remaining_day=remaining_day)

    def record(self, shop: str) -> None:
        if not self.enabled:
            return
        w = self._window(shop, self._clock())
        w.minute_count += 1
        w.day_count += 1

    def try_acquire(self, shop: str) -> QuotaCheck:
        result = self.check(shop)
        if result.allowed:
            self.record(shop)
        else:
            logger.warning("ai_quota_exhausted", shop=shop, reason=result.reason, wait_seconds=round(result.wait_seconds))
        return result

    def reset(self, shop: str | None = None) -> None:
        if shop is None:
            self._windows.clear()
        else:
            self._windows.pop(shop, None)

    @property
    def tracked_shops(self) -> int:
        return len(self._windows)

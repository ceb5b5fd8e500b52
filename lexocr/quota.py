"""Daily/monthly usage gate for the paid cloud OCR engine.

Usage is stored as a single JSON record. Every check loads the record,
every usage update is a load-modify-save cycle. The tracker serialises that
cycle with a lock inside one process; several processes sharing the same
store still need an external lock or an atomic-increment store.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Protocol

from pydantic import BaseModel, ValidationError

from .config import PipelineConfig
from .schema import QuotaState

logger = logging.getLogger(__name__)

QUOTA_WARNING_PERCENT = 80.0


class QuotaStore(Protocol):
    """Persistence boundary for ``QuotaState``."""

    def load(self) -> QuotaState | None: ...

    def save(self, state: QuotaState) -> None: ...


class InMemoryQuotaStore:
    """Process-local store, for tests and embedding."""

    def __init__(self, state: QuotaState | None = None) -> None:
        self._state = state.model_copy() if state is not None else None

    def load(self) -> QuotaState | None:
        return self._state.model_copy() if self._state is not None else None

    def save(self, state: QuotaState) -> None:
        self._state = state.model_copy()


class JsonFileQuotaStore:
    """Single JSON record on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> QuotaState | None:
        if not self.path.exists():
            return None
        try:
            return QuotaState.model_validate(json.loads(self.path.read_text()))
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Failed to read quota file %s: %s", self.path, exc)
            return None

    def save(self, state: QuotaState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(state.model_dump_json(indent=2))


class WindowStats(BaseModel):
    used: int
    limit: int
    percentage: float


class QuotaStats(BaseModel):
    daily: WindowStats
    monthly: WindowStats


def _day_key(now: datetime) -> str:
    return now.strftime("%Y-%m-%d")


def _month_key(now: datetime) -> str:
    return now.strftime("%Y-%m")


def _percent(used: int, limit: int) -> float:
    if limit <= 0:
        return 100.0
    return used / limit * 100


class QuotaTracker:
    """Gate and count cloud OCR pages against daily and monthly limits."""

    def __init__(
        self,
        store: QuotaStore,
        daily_limit: int,
        monthly_limit: int,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.daily_limit = daily_limit
        self.monthly_limit = monthly_limit
        self._clock = clock or datetime.now
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: PipelineConfig) -> QuotaTracker:
        return cls(
            JsonFileQuotaStore(config.quota_file),
            daily_limit=config.daily_limit,
            monthly_limit=config.monthly_limit,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def check_quota_available(self) -> bool:
        """Return False once either window has reached its limit."""
        with self._lock:
            state = self._load_current()

        if state.daily_count >= self.daily_limit:
            logger.warning(
                "Daily cloud OCR quota reached: %d/%d", state.daily_count, self.daily_limit
            )
            return False
        if state.monthly_count >= self.monthly_limit:
            logger.warning(
                "Monthly cloud OCR quota reached: %d/%d",
                state.monthly_count,
                self.monthly_limit,
            )
            return False
        return True

    def track_quota_usage(self, pages_processed: int) -> None:
        """Add ``pages_processed`` to both windows and persist."""
        if pages_processed < 0:
            raise ValueError("pages_processed must be non-negative")
        with self._lock:
            state = self._load_current()
            state.daily_count += pages_processed
            state.monthly_count += pages_processed
            self.store.save(state)

        daily_pct = _percent(state.daily_count, self.daily_limit)
        monthly_pct = _percent(state.monthly_count, self.monthly_limit)
        if daily_pct >= QUOTA_WARNING_PERCENT:
            logger.warning(
                "Daily cloud OCR quota at %.0f%%: %d/%d",
                daily_pct,
                state.daily_count,
                self.daily_limit,
            )
        if monthly_pct >= QUOTA_WARNING_PERCENT:
            logger.warning(
                "Monthly cloud OCR quota at %.0f%%: %d/%d",
                monthly_pct,
                state.monthly_count,
                self.monthly_limit,
            )
        logger.info(
            "Cloud OCR quota used: %d/%d today, %d/%d this month",
            state.daily_count,
            self.daily_limit,
            state.monthly_count,
            self.monthly_limit,
        )

    def get_quota_stats(self) -> QuotaStats:
        with self._lock:
            state = self._load_current()
        return QuotaStats(
            daily=WindowStats(
                used=state.daily_count,
                limit=self.daily_limit,
                percentage=round(_percent(state.daily_count, self.daily_limit), 2),
            ),
            monthly=WindowStats(
                used=state.monthly_count,
                limit=self.monthly_limit,
                percentage=round(_percent(state.monthly_count, self.monthly_limit), 2),
            ),
        )

    def reset_quota(self) -> None:
        """Zero both windows for the current day and month."""
        with self._lock:
            self.store.save(self._fresh_state(self._clock()))
        logger.info("Cloud OCR quota counters reset")

    # ------------------------------------------------------------------
    # Internal (called under lock)
    # ------------------------------------------------------------------
    @staticmethod
    def _fresh_state(now: datetime) -> QuotaState:
        return QuotaState(
            daily_count=0,
            daily_date=_day_key(now),
            monthly_count=0,
            monthly_month=_month_key(now),
            last_reset=now.isoformat(),
        )

    def _load_current(self) -> QuotaState:
        """Load the stored state, resetting any window whose key is stale."""
        now = self._clock()
        state = self.store.load()
        if state is None:
            return self._fresh_state(now)

        updated = False
        if state.daily_date != _day_key(now):
            state.daily_date = _day_key(now)
            state.daily_count = 0
            updated = True
        if state.monthly_month != _month_key(now):
            state.monthly_month = _month_key(now)
            state.monthly_count = 0
            updated = True
        if updated:
            state.last_reset = now.isoformat()
            self.store.save(state)
        return state

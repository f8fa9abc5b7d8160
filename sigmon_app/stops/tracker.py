"""
Trailing stop tracker.

Owns one TrailingStopState per open signal and ratchets stops toward profit.
A stop only ever moves in the risk-reducing direction.

Advancement rules (stated for LONG; SHORT mirrors every comparison):

    profit tiers, most advanced first
        >= 100% of target distance  -> entry + 0.75 * target distance
        >=  75%                     -> entry + 0.50 * target distance
        >=  50%                     -> entry + 0.25 * target distance
        >=  30%                     -> entry (breakeven)
    volatility fallback
        price > entry + 1.5 ATR     -> price - 1.5 ATR

The first candidate that strictly improves on the current stop is applied.

Tier locks are fractions of the target distance, checked highest first. A
lowest-first reading on the profit distance gives different stops (60%
progress: breakeven instead of entry + 0.25 * target distance). Which one
is intended is an open product question; the tests pin this reading.
"""

import threading
from typing import Optional

import structlog

from ..errors import DuplicateSignalError, UnknownSignalError, ValidationError
from ..logging.config import get_stop_logger, log_stop_move
from ..models.signals import Direction
from .models import StopPhase, StopUpdate, TrailingStopState

logger = structlog.get_logger(__name__)
stop_logger = get_stop_logger(__name__)

# (minimum profit percent, fraction of target distance locked, phase)
PROFIT_TIERS: tuple[tuple[float, float, StopPhase], ...] = (
    (100.0, 0.75, StopPhase.TRAILING),
    (75.0, 0.50, StopPhase.TRAILING),
    (50.0, 0.25, StopPhase.TRAILING),
    (30.0, 0.0, StopPhase.BREAKEVEN),
)

ATR_TRAIL_MULTIPLIER = 1.5


class TrailingStopTracker:
    """Thread-safe registry of trailing stops keyed by signal identifier."""

    def __init__(self):
        self.logger = logger
        self._stops: dict[str, TrailingStopState] = {}
        self._registry_lock = threading.Lock()
        self._signal_locks: dict[str, threading.Lock] = {}

    def open(
        self,
        signal_id: str,
        entry_price: float,
        initial_stop: float,
        target_price: float,
        direction: Direction,
        atr: float
    ) -> TrailingStopState:
        """
        Start tracking a signal.

        Raises:
            DuplicateSignalError: if ``signal_id`` is already tracked
            ValidationError: if the target is not beyond the entry or ATR is not positive
        """
        direction = Direction.parse(direction)
        if not signal_id:
            raise ValidationError("signal_id is required", field="signal_id")
        if atr <= 0:
            raise ValidationError("atr must be positive", field="atr", value=atr)

        state = TrailingStopState(
            signal_id=signal_id,
            entry_price=entry_price,
            initial_stop=initial_stop,
            current_stop=initial_stop,
            direction=direction,
            atr=atr,
            target_price=target_price,
        )
        if state.target_distance <= 0:
            raise ValidationError(
                "target_price must lie beyond entry_price in the trade direction",
                field="target_price",
                value=target_price,
            )

        with self._registry_lock:
            if signal_id in self._stops:
                raise DuplicateSignalError(signal_id)
            self._stops[signal_id] = state
            self._signal_locks[signal_id] = threading.Lock()

        self.logger.info(
            "Opened trailing stop",
            signal_id=signal_id,
            direction=direction.value,
            entry_price=entry_price,
            initial_stop=initial_stop,
            target_price=target_price,
            atr=atr,
        )
        return state

    def update(self, signal_id: str, current_price: float) -> StopUpdate:
        """
        Apply a new price to a tracked stop.

        Raises:
            UnknownSignalError: if ``signal_id`` is not tracked
        """
        lock = self._lock_for(signal_id)

        with lock:
            state = self._stops.get(signal_id)
            if state is None:
                raise UnknownSignalError(signal_id)

            candidate, phase = self._next_stop(state, current_price)
            profit_percent = state.profit_percent(current_price)

            if candidate is None:
                return StopUpdate(
                    new_stop=state.current_stop,
                    moved=False,
                    profit_percent=profit_percent,
                    phase=StopPhase.ACTIVE,
                )

            with self._registry_lock:
                # close() may have raced us; never resurrect a closed signal
                if signal_id in self._stops:
                    self._stops[signal_id] = state.with_stop(candidate)

        log_stop_move(stop_logger, signal_id, state.current_stop, candidate,
                      phase.value, profit_percent)

        return StopUpdate(
            new_stop=candidate,
            moved=True,
            profit_percent=profit_percent,
            phase=phase,
        )

    def stop_of(self, signal_id: str) -> Optional[float]:
        """Current stop for a signal, or None if not tracked."""
        state = self._stops.get(signal_id)
        return state.current_stop if state else None

    def get(self, signal_id: str) -> Optional[TrailingStopState]:
        return self._stops.get(signal_id)

    def close(self, signal_id: str) -> bool:
        """Stop tracking a signal. Returns whether anything was removed."""
        with self._registry_lock:
            removed = self._stops.pop(signal_id, None)
            self._signal_locks.pop(signal_id, None)

        if removed is not None:
            self.logger.info("Closed trailing stop", signal_id=signal_id,
                             final_stop=removed.current_stop)
        return removed is not None

    def all_stops(self) -> list[TrailingStopState]:
        """Snapshot of every tracked stop, for bulk reporting."""
        with self._registry_lock:
            return list(self._stops.values())

    def clear(self) -> None:
        with self._registry_lock:
            self._stops.clear()
            self._signal_locks.clear()

    def __contains__(self, signal_id: str) -> bool:
        return signal_id in self._stops

    def __len__(self) -> int:
        return len(self._stops)

    def _lock_for(self, signal_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._signal_locks.get(signal_id)
        if lock is None:
            raise UnknownSignalError(signal_id)
        return lock

    @staticmethod
    def _next_stop(
        state: TrailingStopState,
        current_price: float
    ) -> tuple[Optional[float], StopPhase]:
        """First rule whose stop candidate strictly improves on the current stop."""
        sign = state.direction.sign
        target_distance = state.target_distance
        profit_percent = state.profit_percent(current_price)

        for min_percent, lock_fraction, phase in PROFIT_TIERS:
            if profit_percent < min_percent:
                continue
            candidate = state.entry_price + sign * lock_fraction * target_distance
            if state.improves(candidate):
                return candidate, phase

        trail = ATR_TRAIL_MULTIPLIER * state.atr
        if state.profit_distance(current_price) > trail:
            candidate = current_price - sign * trail
            if state.improves(candidate):
                return candidate, StopPhase.TRAILING

        return None, StopPhase.ACTIVE

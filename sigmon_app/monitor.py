"""
Signal monitor control loop.

Orchestrates the monitoring pipeline on a fixed interval:
Candles → Session → Analysis → Threshold Gate → Trailing Stops → Notifications

Each tick fans out one work unit per active symbol. Units run concurrently on
a thread pool, are bounded by a timeout, and fail in isolation: one symbol's
fetch, analysis or delivery failure never affects another symbol or the loop.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from .analysis.base import AnalysisEngine, CandleSource, coerce_result
from .analysis.indicators import calculate_rsi
from .config.defaults import MonitorParams
from .errors import (
    AlreadyRunningError,
    ChannelDeliveryError,
    DuplicateSignalError,
    UnknownSignalError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
    ValidationError,
)
from .logging.config import get_gating_logger, log_gate_decision
from .models.signals import CandidateSignal
from .notifications.manager import NotificationManager
from .notifications.models import NotificationKind
from .session.classifier import (
    SessionClassifier,
    SessionConfig,
    adjust_min_score,
    adjust_stop_multiplier,
)
from .stops.models import StopPhase
from .stops.tracker import TrailingStopTracker
from .utils.time import now_ms

logger = structlog.get_logger(__name__)
gating_logger = get_gating_logger(__name__)


class MonitorState(str, Enum):
    """Control loop states."""
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"


class UnitStatus(str, Enum):
    """Outcome of one symbol's work unit within a tick."""
    DISPATCHED = "dispatched"      # Candidate accepted and notification recorded
    SUPPRESSED = "suppressed"      # Accepted by the gate, dropped by the notification manager
    REJECTED = "rejected"          # Below the session-adjusted threshold
    NO_SIGNAL = "no_signal"        # Engine produced no candidate
    FAILED = "failed"              # Upstream or delivery failure
    TIMEOUT = "timeout"            # Unit exceeded its time bound
    BUSY = "busy"                  # Previous unit for this symbol still running


@dataclass
class SymbolOutcome:
    """What happened to one symbol during a tick."""
    symbol: str
    status: UnitStatus
    reason: Optional[str] = None
    score: Optional[float] = None
    threshold: Optional[float] = None
    notification_id: Optional[str] = None
    signal_id: Optional[str] = None
    stop: Optional[float] = None


@dataclass
class SymbolRunState:
    """Per-symbol bookkeeping carried across ticks."""
    open_signal_id: Optional[str] = None
    last_tick_at: Optional[int] = None
    last_status: Optional[str] = None
    last_reason: Optional[str] = None
    consecutive_failures: int = 0


@dataclass
class TickReport:
    """Summary of one tick."""
    started_at: int
    finished_at: int
    session: str
    outcomes: dict[str, SymbolOutcome] = field(default_factory=dict)

    def count(self, status: UnitStatus) -> int:
        return sum(1 for o in self.outcomes.values() if o.status == status)


class SignalMonitor:
    """
    Periodic market monitor.

    States: STOPPED → RUNNING → STOPPED. ``start()`` while running raises
    AlreadyRunningError; ``stop()`` while stopped is a no-op. Stopping never
    interrupts an in-flight tick, it only prevents the next one.
    """

    def __init__(
        self,
        candle_source: CandleSource,
        engine: AnalysisEngine,
        notifications: NotificationManager,
        tracker: Optional[TrailingStopTracker] = None,
        params: Optional[MonitorParams] = None,
        classifier: Optional[SessionClassifier] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.logger = logger
        self.candle_source = candle_source
        self.engine = engine
        self.notifications = notifications
        self.tracker = tracker or TrailingStopTracker()
        self.params = params or MonitorParams()
        self.classifier = classifier or SessionClassifier(clock=clock)
        self._clock = clock

        self._state_lock = threading.Lock()
        self._state = MonitorState.STOPPED
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

        self._symbols_lock = threading.Lock()
        self._symbol_states: dict[str, SymbolRunState] = {}
        self._in_flight: dict[str, Future] = {}
        self._executor: Optional[ThreadPoolExecutor] = None

        self.last_tick_at: Optional[int] = None
        self.last_report: Optional[TickReport] = None

        self.logger.info(
            "Signal monitor initialized",
            interval_ms=self.params.interval_ms,
            max_workers=self.params.max_workers
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._state == MonitorState.RUNNING

    @property
    def state(self) -> MonitorState:
        return self._state

    def start(self) -> None:
        """
        Begin scheduling ticks every ``interval_ms``.

        Raises:
            AlreadyRunningError: if the monitor is already running
        """
        with self._state_lock:
            if self._state == MonitorState.RUNNING:
                raise AlreadyRunningError()

            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run_loop,
                args=(stop_event,),
                name="signal-monitor",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            self._state = MonitorState.RUNNING
            thread.start()

        self.logger.info("Signal monitor started", interval_ms=self.params.interval_ms)

    def stop(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        """
        Stop scheduling ticks. No-op when already stopped.

        Args:
            wait: Block until the in-flight tick (if any) has completed
            timeout: Upper bound on the wait, in seconds
        """
        with self._state_lock:
            if self._state == MonitorState.STOPPED:
                return

            self._state = MonitorState.STOPPED
            if self._stop_event is not None:
                self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None

        self.logger.info("Signal monitor stopped")

        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def shutdown(self) -> None:
        """Stop and release the worker pool."""
        self.stop(wait=True)
        with self._symbols_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)

    def _run_loop(self, stop_event: threading.Event) -> None:
        interval_seconds = self.params.interval_ms / 1000

        if self.params.run_immediately:
            self._safe_tick(stop_event)

        while not stop_event.wait(interval_seconds):
            self._safe_tick(stop_event)

    def _safe_tick(self, stop_event: threading.Event) -> None:
        if stop_event.is_set():
            return
        try:
            self.run_tick()
        except Exception:
            # The loop must survive anything a tick throws
            self.logger.exception("Unhandled error during monitor tick")

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def run_tick(self) -> TickReport:
        """
        Evaluate every active symbol once.

        Safe to call directly (tests, manual refresh) whether or not the
        scheduler is running.
        """
        started_at = self._clock()
        session = self.classifier.classify()
        symbols = self.notifications.get_active_symbols()

        self.logger.info(
            "Monitor tick started",
            session=session.session.value,
            symbols=symbols
        )

        report = TickReport(started_at=started_at, finished_at=started_at,
                            session=session.session.value)

        futures: dict[str, Future] = {}
        executor = self._get_executor()
        for symbol in symbols:
            with self._symbols_lock:
                previous = self._in_flight.get(symbol)
                if previous is not None and not previous.done():
                    report.outcomes[symbol] = SymbolOutcome(
                        symbol, UnitStatus.BUSY, reason="previous unit still running")
                    continue
                future = executor.submit(self._process_symbol, symbol, session)
                self._in_flight[symbol] = future
            futures[symbol] = future

        unit_timeout = self.params.fetch_timeout_seconds + self.params.dispatch_timeout_seconds
        deadline = time.monotonic() + unit_timeout

        for symbol, future in futures.items():
            remaining = max(0.0, deadline - time.monotonic())
            try:
                report.outcomes[symbol] = future.result(timeout=remaining)
            except FutureTimeoutError:
                error = UpstreamTimeoutError(
                    f"Symbol unit exceeded {unit_timeout:.1f}s",
                    timeout_seconds=unit_timeout,
                    symbol=symbol
                )
                report.outcomes[symbol] = self._failure(symbol, error, UnitStatus.TIMEOUT)
            except (UpstreamUnavailableError, ValidationError) as e:
                report.outcomes[symbol] = self._failure(symbol, e, UnitStatus.FAILED)
            except Exception as e:
                self.logger.exception("Unexpected error processing symbol", symbol=symbol)
                report.outcomes[symbol] = self._failure(symbol, e, UnitStatus.FAILED)

        for symbol, outcome in report.outcomes.items():
            self._record_outcome(symbol, outcome, started_at)

        report.finished_at = self._clock()
        self.last_tick_at = started_at
        self.last_report = report

        self.logger.info(
            "Monitor tick completed",
            session=report.session,
            dispatched=report.count(UnitStatus.DISPATCHED),
            rejected=report.count(UnitStatus.REJECTED),
            failed=report.count(UnitStatus.FAILED) + report.count(UnitStatus.TIMEOUT),
            duration_ms=report.finished_at - started_at
        )
        return report

    def _process_symbol(self, symbol: str, session: SessionConfig) -> SymbolOutcome:
        """One symbol's work unit: fetch, analyze, gate, track, dispatch."""
        candles = self._fetch(symbol)
        latest_close = candles[-1].close

        result = self._analyze(symbol, candles)
        # Stops only advance on a tick whose analysis succeeded
        self._advance_open_stop(symbol, latest_close)
        candidate = result.signal

        if candidate is None:
            reason = "; ".join(result.blocking_reasons) or "no setup"
            return SymbolOutcome(symbol, UnitStatus.NO_SIGNAL, reason=reason)

        threshold = adjust_min_score(self.engine.base_min_score, session.session)
        passed = candidate.score >= threshold

        log_gate_decision(
            gating_logger,
            symbol=symbol,
            passed=passed,
            score=candidate.score,
            threshold=threshold,
            session=session.session.value,
            reason="score meets session threshold" if passed else "score below session threshold",
            context={"direction": candidate.direction.value}
        )

        if not passed:
            return SymbolOutcome(
                symbol, UnitStatus.REJECTED,
                reason=f"score {candidate.score:.1f} below {session.session.value} threshold {threshold:g}",
                score=candidate.score,
                threshold=threshold,
            )

        signal_id = self._track_candidate(symbol, candidate, session)
        record = self.notifications.dispatch(candidate)

        return SymbolOutcome(
            symbol,
            UnitStatus.DISPATCHED if record else UnitStatus.SUPPRESSED,
            reason=None if record else "suppressed by notification preferences or cooldown",
            score=candidate.score,
            threshold=threshold,
            notification_id=record.id if record else None,
            signal_id=signal_id,
            stop=self.tracker.stop_of(signal_id) if signal_id else None,
        )

    def _fetch(self, symbol: str):
        try:
            candles = self.candle_source.fetch_candles(
                symbol, self.params.candle_interval, self.params.candle_limit)
        except UpstreamUnavailableError:
            raise
        except Exception as e:
            raise UpstreamUnavailableError(
                f"Candle fetch failed: {str(e)}", source="candles", symbol=symbol) from e

        if not candles:
            raise UpstreamUnavailableError("No candles returned", source="candles", symbol=symbol)
        return candles

    def _analyze(self, symbol: str, candles):
        auxiliary = {"rsi": calculate_rsi(candles)}
        try:
            raw = self.engine.analyze(symbol, candles, auxiliary)
            return coerce_result(symbol, raw)
        except UpstreamUnavailableError:
            raise
        except Exception as e:
            raise UpstreamUnavailableError(
                f"Analysis failed: {str(e)}", source="analysis", symbol=symbol) from e

    # ------------------------------------------------------------------
    # Trailing stops
    # ------------------------------------------------------------------

    def _advance_open_stop(self, symbol: str, price: float) -> None:
        """Close or ratchet the symbol's open signal against the latest close."""
        signal_id = self._symbol_state(symbol).open_signal_id
        if signal_id is None:
            return

        state = self.tracker.get(signal_id)
        if state is None:
            self._set_open_signal(symbol, None)
            return

        if state.is_target_hit(price) or state.is_stopped_out(price):
            outcome = "target reached" if state.is_target_hit(price) else "stopped out"
            self.close_signal(signal_id)
            self._notice(
                symbol, state.direction, NotificationKind.SIGNAL_CLOSED, signal_id,
                f"{symbol} {state.direction.value} closed: {outcome} at {price:g}",
                {"price": price, "stop": state.current_stop, "outcome": outcome},
            )
            return

        try:
            update = self.tracker.update(signal_id, price)
        except UnknownSignalError:
            # Closed concurrently (dismissal); nothing to do
            self._set_open_signal(symbol, None)
            return

        if update.moved and update.phase in (StopPhase.BREAKEVEN, StopPhase.TRAILING):
            label = "breakeven" if update.phase == StopPhase.BREAKEVEN else "trailing"
            self._notice(
                symbol, state.direction, NotificationKind.STOP_MOVED, signal_id,
                f"{symbol} stop moved to {update.new_stop:g} ({label}, "
                f"{update.profit_percent:.0f}% of target)",
                {"new_stop": update.new_stop, "previous_stop": state.current_stop,
                 "phase": update.phase.value, "profit_percent": update.profit_percent},
            )

    def _track_candidate(self, symbol: str, candidate: CandidateSignal,
                         session: SessionConfig) -> Optional[str]:
        """Open a trailing stop for an accepted candidate; close-and-reopen on identity change."""
        signal_id = candidate.identity
        open_id = self._symbol_state(symbol).open_signal_id

        if open_id == signal_id and signal_id in self.tracker:
            return signal_id

        if open_id is not None and open_id != signal_id:
            self.logger.info("Signal identity changed, reopening trailing stop",
                             symbol=symbol, previous_signal_id=open_id, signal_id=signal_id)
            self.close_signal(open_id)

        multiplier = adjust_stop_multiplier(self.params.base_atr_multiplier, session.session)
        distance = multiplier * candidate.atr
        initial_stop = candidate.entry_price - candidate.direction.sign * distance

        try:
            self.tracker.open(
                signal_id,
                entry_price=candidate.entry_price,
                initial_stop=initial_stop,
                target_price=candidate.target_price,
                direction=candidate.direction,
                atr=candidate.atr,
            )
        except DuplicateSignalError:
            pass
        except ValidationError as e:
            self.logger.warning("Candidate not trackable", symbol=symbol,
                                signal_id=signal_id, error=str(e))
            return None

        self._set_open_signal(symbol, signal_id)
        return signal_id

    def close_signal(self, signal_id: str) -> bool:
        """Stop tracking a signal and forget it as any symbol's open signal."""
        removed = self.tracker.close(signal_id)
        with self._symbols_lock:
            for state in self._symbol_states.values():
                if state.open_signal_id == signal_id:
                    state.open_signal_id = None
        return removed

    def _notice(self, symbol, direction, kind, signal_id, text, details) -> None:
        try:
            self.notifications.dispatch_notice(
                symbol, direction, text, kind=kind, signal_id=signal_id, details=details)
        except ChannelDeliveryError as e:
            self.logger.warning("Notice delivery failed", symbol=symbol,
                                signal_id=signal_id, error=str(e))

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _failure(self, symbol: str, error: Exception, status: UnitStatus) -> SymbolOutcome:
        self.logger.warning(
            "Symbol processing failed",
            symbol=symbol,
            status=status.value,
            stage=getattr(error, "source", None),
            error=str(error)
        )
        return SymbolOutcome(symbol, status, reason=str(error))

    def _symbol_state(self, symbol: str) -> SymbolRunState:
        with self._symbols_lock:
            return self._symbol_states.setdefault(symbol, SymbolRunState())

    def _set_open_signal(self, symbol: str, signal_id: Optional[str]) -> None:
        with self._symbols_lock:
            self._symbol_states.setdefault(symbol, SymbolRunState()).open_signal_id = signal_id

    def _record_outcome(self, symbol: str, outcome: SymbolOutcome, tick_at: int) -> None:
        with self._symbols_lock:
            state = self._symbol_states.setdefault(symbol, SymbolRunState())
            state.last_tick_at = tick_at
            state.last_status = outcome.status.value
            state.last_reason = outcome.reason
            if outcome.status in (UnitStatus.FAILED, UnitStatus.TIMEOUT):
                state.consecutive_failures += 1
            else:
                state.consecutive_failures = 0

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._symbols_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.params.max_workers,
                    thread_name_prefix="signal-unit",
                )
            return self._executor

    def get_status(self) -> dict[str, Any]:
        """Run state snapshot: running flag, config, last tick and per-symbol state."""
        with self._symbols_lock:
            per_symbol = {s: asdict(st) for s, st in self._symbol_states.items()}
        return {
            "is_running": self.is_running,
            "state": self._state.value,
            "interval_ms": self.params.interval_ms,
            "last_tick_at": self.last_tick_at,
            "config": asdict(self.params),
            "per_symbol_state": per_symbol,
        }

"""
Notification manager.

Owns alert history, preferences and cooldown state. Every dispatched record
is appended to history before the outbound attempt; a delivery failure marks
the record FAILED but never removes it.
"""

import copy
import threading
import uuid
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

import structlog

from ..config.channels import ChannelConfig, parse_channel_config
from ..config.defaults import NotificationParams
from ..config.validation import ConfigValidator
from ..delivery.base import BaseNotifier
from ..delivery.factory import create_notifier
from ..errors import (
    ChannelDeliveryError,
    NotificationNotFoundError,
    PersistenceError,
    StatePreconditionError,
    ValidationError,
)
from ..models.signals import CandidateSignal, Direction
from ..utils.time import now_ms
from .models import (
    DeliveryState,
    NotificationKind,
    NotificationRecord,
    Preferences,
    UrgencyTier,
)

if TYPE_CHECKING:
    from ..persistence.notification_store import NotificationStore

logger = structlog.get_logger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


class NotificationManager:
    """Dispatches, records and dismisses notifications."""

    def __init__(
        self,
        preferences: Optional[Preferences] = None,
        params: Optional[NotificationParams] = None,
        notifier: Optional[BaseNotifier] = None,
        store: Optional["NotificationStore"] = None,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.logger = logger
        self.params = params or NotificationParams()
        self._clock = clock
        self._id_factory = id_factory
        self._store = store
        self._lock = threading.RLock()
        self._history: list[NotificationRecord] = []
        self._index: dict[str, NotificationRecord] = {}
        self._cooldowns: dict[tuple[str, Direction], tuple[int, int]] = {}

        self._preferences = preferences or Preferences.from_defaults(params=self.params)

        if store is not None:
            self._restore_from_store(store, keep_preferences=preferences is not None)

        self._notifier = notifier
        if self._notifier is None and self._preferences.channel_config is not None:
            self._notifier = create_notifier(self._preferences.channel_config)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(
        self,
        candidate: CandidateSignal,
        reasoning: Optional[str] = None
    ) -> Optional[NotificationRecord]:
        """
        Record and send a notification for an accepted candidate.

        Candidates below the warning threshold, on inactive symbols, with a
        disabled urgency tier, or inside their cooldown window are dropped
        without a history entry.

        Returns:
            The recorded notification, or None when the candidate was dropped

        Raises:
            ChannelDeliveryError: delivery failed; the record stays in history as FAILED
        """
        with self._lock:
            prefs = self._preferences
            tier = prefs.urgency_thresholds.tier_for(candidate.score)
            drop_reason = self._drop_reason(candidate, tier, prefs)

            if drop_reason:
                self.logger.debug(
                    "Candidate not dispatched",
                    symbol=candidate.symbol,
                    direction=candidate.direction.value,
                    score=candidate.score,
                    reason=drop_reason
                )
                return None

            record = NotificationRecord(
                id=self._id_factory(),
                symbol=candidate.symbol,
                direction=candidate.direction,
                score=candidate.score,
                urgency_tier=tier,
                reasoning=reasoning or candidate.reasoning,
                timestamp_ms=self._clock(),
                signal_id=candidate.identity,
                details={
                    "entry_price": candidate.entry_price,
                    "stop_price": candidate.stop_price,
                    "target_price": candidate.target_price,
                },
            )
            self._append(record)
            self._set_cooldown(candidate.symbol, candidate.direction, tier, record.timestamp_ms)

        self.logger.info(
            "Notification created",
            notification_id=record.id,
            symbol=record.symbol,
            direction=record.direction.value,
            urgency=tier.value,
            score=record.score
        )

        self._deliver(record)
        return record

    def dispatch_notice(
        self,
        symbol: str,
        direction: Direction,
        reasoning: str,
        kind: NotificationKind = NotificationKind.STOP_MOVED,
        signal_id: Optional[str] = None,
        score: float = 0.0,
        details: Optional[dict[str, Any]] = None
    ) -> NotificationRecord:
        """
        Record and send an INFO-tier notice about a tracked signal.

        Notices bypass score thresholds and cooldowns.

        Raises:
            ChannelDeliveryError: delivery failed; the record stays in history as FAILED
        """
        with self._lock:
            record = NotificationRecord(
                id=self._id_factory(),
                symbol=symbol,
                direction=direction,
                score=score,
                urgency_tier=UrgencyTier.INFO,
                reasoning=reasoning,
                timestamp_ms=self._clock(),
                signal_id=signal_id,
                kind=kind,
                details=dict(details or {}),
            )
            self._append(record)

        self.logger.info(
            "Notice created",
            notification_id=record.id,
            symbol=symbol,
            kind=kind.value,
            signal_id=signal_id
        )

        self._deliver(record)
        return record

    def _drop_reason(
        self,
        candidate: CandidateSignal,
        tier: Optional[UrgencyTier],
        prefs: Preferences
    ) -> Optional[str]:
        if tier is None:
            return "below_warning_threshold"
        if candidate.symbol not in prefs.active_symbols:
            return "symbol_not_active"
        if tier == UrgencyTier.WARNING and not prefs.enable_warning:
            return "warning_disabled"
        if tier == UrgencyTier.URGENT and not prefs.enable_urgent:
            return "urgent_disabled"
        if self.is_in_cooldown(candidate.symbol, candidate.direction):
            return "cooldown"
        return None

    def _deliver(self, record: NotificationRecord) -> None:
        """One outbound attempt (with bounded retries) for a recorded notification."""
        notifier = self._notifier
        if notifier is None:
            self.logger.warning("No notifier configured, notification left pending",
                                notification_id=record.id)
            return

        try:
            result = notifier.deliver_with_retry(
                record,
                max_retries=self.params.max_retries,
                retry_delay=self.params.retry_delay_seconds
            )
        except Exception as e:
            self._mark(record.id, DeliveryState.FAILED)
            raise ChannelDeliveryError(
                f"Unexpected channel error: {str(e)}",
                channel=notifier.name,
                notification_id=record.id,
                symbol=record.symbol
            ) from e

        if result.ok:
            self._mark(record.id, DeliveryState.SENT)
            return

        self._mark(record.id, DeliveryState.FAILED)
        self.logger.error(
            "Notification delivery failed",
            notification_id=record.id,
            channel=notifier.name,
            status=result.status.value,
            attempts=result.attempt_count,
            message=result.message
        )
        raise ChannelDeliveryError(
            result.message or "delivery failed",
            channel=notifier.name,
            notification_id=record.id,
            symbol=record.symbol
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def dismiss(self, notification_id: str) -> NotificationRecord:
        """
        Mark a notification dismissed. Dismissing twice is not an error.

        Records already cleaned out of memory are looked up in the store.

        Raises:
            NotificationNotFoundError: if the id is absent
        """
        with self._lock:
            record = self._index.get(notification_id)
            if record is None and self._store is not None:
                record = self._store.load_record(notification_id)
            if record is None:
                raise NotificationNotFoundError(notification_id)

            if not record.dismissed:
                record.dismissed = True
                record.dismissed_at_ms = self._clock()
                self._persist(record)
                self.logger.info("Notification dismissed", notification_id=notification_id)

            return copy.copy(record)

    def get(self, notification_id: str) -> Optional[NotificationRecord]:
        with self._lock:
            record = self._index.get(notification_id)
            return copy.copy(record) if record else None

    def get_history(
        self,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None
    ) -> list[NotificationRecord]:
        """
        Records with ``start_ms <= timestamp_ms < end_ms``, oldest first.

        With a store attached the store is the source of truth, so records
        dropped by ``cleanup`` are still returned. Records still held in
        memory are returned in their in-memory state.
        """
        with self._lock:
            if self._store is not None:
                try:
                    stored = self._store.load_history(start_ms, end_ms)
                except PersistenceError as e:
                    self.logger.error("Failed to load history from store, using memory",
                                      error=str(e))
                else:
                    return [copy.copy(self._index.get(r.id, r)) for r in stored]

            return [
                copy.copy(record) for record in self._history
                if (start_ms is None or record.timestamp_ms >= start_ms)
                and (end_ms is None or record.timestamp_ms < end_ms)
            ]

    def get_pending(self) -> list[NotificationRecord]:
        with self._lock:
            return [copy.copy(r) for r in self._history if r.status == DeliveryState.PENDING]

    def cleanup(self, retention_days: Optional[int] = None) -> int:
        """
        Drop in-memory records older than the retention window.

        The durable store keeps them, and history and dismissal keep reading
        them from there. Returns the number of records dropped.

        Raises:
            StatePreconditionError: if no store is attached, since dropped
                records would be lost
        """
        if self._store is None:
            raise StatePreconditionError(
                "cleanup requires a notification store", current_state="NO_STORE"
            )

        days = self.params.retention_days if retention_days is None else retention_days
        cutoff = self._clock() - days * DAY_MS

        with self._lock:
            kept = [r for r in self._history if r.timestamp_ms >= cutoff]
            dropped = len(self._history) - len(kept)
            self._history = kept
            self._index = {r.id: r for r in kept}

        if dropped:
            self.logger.info("Cleaned up old notifications", dropped=dropped,
                             retention_days=days)
        return dropped

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def get_preferences(self) -> Preferences:
        with self._lock:
            return self._preferences

    def get_active_symbols(self) -> list[str]:
        with self._lock:
            return sorted(self._preferences.active_symbols)

    def update_preferences(self, partial: dict[str, Any]) -> Preferences:
        """
        Merge a partial preferences update.

        Raises:
            ValidationError: if any supplied field is invalid
        """
        if not isinstance(partial, dict):
            raise ValidationError("Preferences update must be a mapping",
                                  field="preferences", value=partial)

        issues = ConfigValidator.validate_preferences(partial)
        if issues:
            first = issues[0]
            raise ValidationError(
                f"{first.field}: {first.message}", field=first.field, value=first.value
            )

        partial = dict(partial)
        channel_changed = False
        if "channel_config" in partial and not isinstance(partial["channel_config"], ChannelConfig):
            raw = partial["channel_config"]
            partial["channel_config"] = parse_channel_config(raw) if raw else None

        with self._lock:
            previous = self._preferences
            merged = previous.merged(partial)
            thresholds = merged.urgency_thresholds
            if thresholds.urgent < thresholds.warning:
                raise ValidationError(
                    "urgent threshold must not be below warning threshold",
                    field="urgency_thresholds",
                    value={"warning": thresholds.warning, "urgent": thresholds.urgent},
                )
            self._preferences = merged
            channel_changed = self._preferences.channel_config != previous.channel_config
            if channel_changed:
                channel = self._preferences.channel_config
                self._notifier = create_notifier(channel) if channel else None
            self._persist_preferences()
            updated = self._preferences

        self.logger.info(
            "Preferences updated",
            fields=sorted(partial.keys()),
            active_symbols=sorted(updated.active_symbols),
            channel_changed=channel_changed
        )
        return updated

    def subscribe(self, symbol: str) -> bool:
        """Add a symbol to the active set. Returns False if already active."""
        with self._lock:
            if symbol in self._preferences.active_symbols:
                return False
            self.update_preferences({"active_symbols": self._preferences.active_symbols | {symbol}})
            return True

    def unsubscribe(self, symbol: str) -> bool:
        """Remove a symbol from the active set. Returns False if it was not active."""
        with self._lock:
            if symbol not in self._preferences.active_symbols:
                return False
            self.update_preferences({"active_symbols": self._preferences.active_symbols - {symbol}})
            return True

    def subscribe_all(self, symbols: Iterable[str]) -> int:
        """Add every symbol; returns the resulting active count."""
        with self._lock:
            self.update_preferences({"active_symbols": self._preferences.active_symbols | set(symbols)})
            return len(self._preferences.active_symbols)

    def unsubscribe_all(self) -> int:
        """Clear the active set; returns how many symbols were active."""
        with self._lock:
            count = len(self._preferences.active_symbols)
            self.update_preferences({"active_symbols": []})
            return count

    # ------------------------------------------------------------------
    # Channel
    # ------------------------------------------------------------------

    @property
    def notifier(self) -> Optional[BaseNotifier]:
        return self._notifier

    def set_notifier(self, notifier: Optional[BaseNotifier]) -> None:
        self._notifier = notifier

    # ------------------------------------------------------------------
    # Cooldowns
    # ------------------------------------------------------------------

    def is_in_cooldown(self, symbol: str, direction: Direction) -> bool:
        with self._lock:
            entry = self._cooldowns.get((symbol, direction))
            if entry is None:
                return False
            last_ms, duration_ms = entry
            return self._clock() - last_ms < duration_ms

    def _set_cooldown(self, symbol: str, direction: Direction,
                      tier: UrgencyTier, timestamp_ms: int) -> None:
        duration = (self.params.urgent_cooldown_ms if tier == UrgencyTier.URGENT
                    else self.params.warning_cooldown_ms)
        self._cooldowns[(symbol, direction)] = (timestamp_ms, duration)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _append(self, record: NotificationRecord) -> None:
        self._history.append(record)
        self._index[record.id] = record
        self._persist(record, new=True)

    def _mark(self, notification_id: str, status: DeliveryState) -> None:
        with self._lock:
            record = self._index.get(notification_id)
            if record is None:
                return
            record.status = status
            if status == DeliveryState.SENT:
                record.sent_at_ms = self._clock()
            self._persist(record)

    def _persist(self, record: NotificationRecord, new: bool = False) -> None:
        if self._store is None:
            return
        try:
            if new or not self._store.update_record(record):
                self._store.save_record(record)
        except PersistenceError as e:
            self.logger.error("Failed to persist notification",
                              notification_id=record.id, error=str(e))

    def _persist_preferences(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save_preferences(self._preferences.to_dict(redact=False))
        except PersistenceError as e:
            self.logger.error("Failed to persist preferences", error=str(e))

    def _restore_from_store(self, store: "NotificationStore", keep_preferences: bool) -> None:
        for record in store.load_history():
            self._history.append(record)
            self._index[record.id] = record

        saved = store.load_preferences()
        if saved and not keep_preferences:
            self._preferences = Preferences.from_dict(saved)

        self.logger.info("Restored notification state", records=len(self._history),
                         preferences_restored=bool(saved and not keep_preferences))

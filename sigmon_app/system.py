"""
Signal system context.

Holds the one-time initialized state (preferences, notification history,
trailing stops and the monitor) behind an explicit object so callers and
the HTTP layer never share module-level globals.
"""

import threading
from dataclasses import replace
from typing import Any, Callable, Optional

import structlog

from .analysis.base import AnalysisEngine, CandleSource
from .commands import CommandHandler
from .config.channels import ChannelConfig, parse_channel_config
from .config.defaults import DefaultConfig, MonitorParams, get_default_config
from .config.validation import ConfigValidator
from .delivery.base import BaseNotifier
from .delivery.factory import create_notifier
from .errors import (
    AlreadyInitializedError,
    ChannelDeliveryError,
    NotInitializedError,
    ValidationError,
)
from .monitor import SignalMonitor
from .notifications.manager import NotificationManager
from .notifications.models import NotificationRecord, Preferences
from .persistence.notification_store import NotificationStore
from .session.classifier import SessionClassifier
from .stops.tracker import TrailingStopTracker
from .utils.time import now_ms

logger = structlog.get_logger(__name__)


class SignalSystem:
    """Entry point for every externally exposed operation."""

    def __init__(
        self,
        candle_source: CandleSource,
        engine: AnalysisEngine,
        config: Optional[DefaultConfig] = None,
        store: Optional[NotificationStore] = None,
        notifier: Optional[BaseNotifier] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.logger = logger
        self.candle_source = candle_source
        self.engine = engine
        self.config = config or get_default_config()
        self.store = store
        self._notifier = notifier
        self._clock = clock

        self._lock = threading.Lock()
        self.notifications: Optional[NotificationManager] = None
        self.tracker: Optional[TrailingStopTracker] = None
        self.monitor: Optional[SignalMonitor] = None
        self.commands: Optional[CommandHandler] = None

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self.monitor is not None

    def initialize(
        self,
        symbols: Optional[list[str]] = None,
        preferences: Optional[dict[str, Any]] = None,
        monitor_config: Optional[dict[str, Any]] = None,
        channel: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Build preferences, history, trailing stops and the monitor once.

        Args:
            symbols: Active symbols; overrides ``preferences["active_symbols"]``
            preferences: Partial preferences merged over the defaults
            monitor_config: Overrides for MonitorParams fields
            channel: Notification channel mapping (see parse_channel_config)

        Raises:
            AlreadyInitializedError: on a second call
            ValidationError: if any argument is invalid; nothing is initialized
        """
        with self._lock:
            if self.is_initialized:
                raise AlreadyInitializedError()

            params = self._monitor_params(monitor_config)

            partial = dict(preferences or {})
            if symbols is not None:
                partial["active_symbols"] = symbols
            if channel is not None:
                partial["channel_config"] = parse_channel_config(channel)

            restore = self.store is not None and self.store.load_preferences() is not None
            notifications = NotificationManager(
                preferences=None if restore else Preferences.from_defaults(
                    self.config.preferences, self.config.notifications),
                params=self.config.notifications,
                notifier=self._notifier,
                store=self.store,
                clock=self._clock,
            )
            if partial:
                notifications.update_preferences(partial)

            tracker = TrailingStopTracker()
            monitor = SignalMonitor(
                candle_source=self.candle_source,
                engine=self.engine,
                notifications=notifications,
                tracker=tracker,
                params=params,
                classifier=SessionClassifier(clock=self._clock),
                clock=self._clock,
            )

            self.notifications = notifications
            self.tracker = tracker
            self.commands = CommandHandler(notifications)
            self.monitor = monitor

        self.logger.info(
            "Signal system initialized",
            active_symbols=notifications.get_active_symbols(),
            interval_ms=params.interval_ms,
            restored_preferences=restore
        )
        return self.status()

    def _monitor_params(self, overrides: Optional[dict[str, Any]]) -> MonitorParams:
        if not overrides:
            return self.config.monitor
        if not isinstance(overrides, dict):
            raise ValidationError("monitor_config must be a mapping",
                                  field="monitor_config", value=overrides)

        issues = ConfigValidator.validate_monitor_params(overrides)
        if issues:
            first = issues[0]
            raise ValidationError(f"{first.field}: {first.message}",
                                  field=first.field, value=first.value)

        known = set(MonitorParams.__dataclass_fields__)
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValidationError(f"Unknown monitor_config fields: {', '.join(unknown)}",
                                  field="monitor_config", value=unknown)
        return replace(self.config.monitor, **overrides)

    def _require(self) -> SignalMonitor:
        if self.monitor is None:
            raise NotInitializedError()
        return self.monitor

    # ------------------------------------------------------------------
    # Monitor
    # ------------------------------------------------------------------

    def start(self) -> dict[str, Any]:
        self._require().start()
        return self.status()

    def stop(self, wait: bool = False) -> dict[str, Any]:
        self._require().stop(wait=wait)
        return self.status()

    def status(self) -> dict[str, Any]:
        return self._require().get_status()

    def shutdown(self) -> None:
        """Stop the monitor and release its workers. Safe before init."""
        if self.monitor is not None:
            self.monitor.shutdown()

    # ------------------------------------------------------------------
    # Preferences and history
    # ------------------------------------------------------------------

    def get_preferences(self) -> Preferences:
        self._require()
        return self.notifications.get_preferences()

    def update_preferences(self, partial: dict[str, Any]) -> Preferences:
        self._require()
        return self.notifications.update_preferences(partial)

    def get_history(self, start_ms: Optional[int] = None,
                    end_ms: Optional[int] = None) -> list[NotificationRecord]:
        self._require()
        if start_ms is not None and end_ms is not None and end_ms < start_ms:
            raise ValidationError("end must not precede start", field="end", value=end_ms)
        return self.notifications.get_history(start_ms, end_ms)

    def dismiss(self, notification_id: str) -> NotificationRecord:
        """Dismiss a notification and stop trailing its signal."""
        monitor = self._require()
        if not notification_id:
            raise ValidationError("Notification id is required", field="id")

        record = self.notifications.dismiss(notification_id)
        if record.signal_id and monitor.close_signal(record.signal_id):
            self.logger.info("Closed trailing stop on dismissal",
                             notification_id=notification_id, signal_id=record.signal_id)
        return record

    def stop_report(self) -> list[dict[str, Any]]:
        self._require()
        return [state.to_dict() for state in self.tracker.all_stops()]

    # ------------------------------------------------------------------
    # Channel
    # ------------------------------------------------------------------

    def configure_channel(self, channel: dict[str, Any], verify: bool = True) -> ChannelConfig:
        """
        Validate and store a notification channel.

        Raises:
            ValidationError: malformed channel mapping
            ChannelDeliveryError: ``verify`` is set and the channel is unreachable
        """
        self._require()
        config = parse_channel_config(channel)

        if verify and not create_notifier(config).health_check():
            raise ChannelDeliveryError("Channel is not reachable", channel=config.kind.value)

        self.notifications.update_preferences({"channel_config": config})
        self.logger.info("Notification channel configured", channel=config.kind.value)
        return config

    def test_channel(self, send_message: bool = False,
                     channel: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Check a channel's reachability, optionally sending a test message.

        Tests the supplied channel mapping, or the configured channel when
        none is given. Neither preferences nor monitor state change.
        """
        self._require()
        if channel:
            notifier = create_notifier(parse_channel_config(channel))
        else:
            notifier = self.notifications.notifier
            if notifier is None:
                raise ValidationError("No notification channel configured", field="channel")

        ok = notifier.send_test_message() if send_message else notifier.health_check()
        self.logger.info("Channel tested", channel=notifier.name,
                         send_message=send_message, ok=ok)
        return {"channel": notifier.name, "ok": ok}

    def handle_command(self, text: str) -> str:
        self._require()
        return self.commands.handle(text)

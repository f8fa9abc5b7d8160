"""Tests for notification dispatch, history, dismissal and preferences."""

import threading
from unittest.mock import Mock

import pytest

from sigmon_app.config.channels import ChannelKind, parse_channel_config
from sigmon_app.errors import (
    ChannelDeliveryError,
    NotificationNotFoundError,
    StatePreconditionError,
    ValidationError,
)
from sigmon_app.models.signals import Direction
from sigmon_app.notifications.manager import NotificationManager
from sigmon_app.notifications.models import (
    DeliveryState,
    NotificationKind,
    Preferences,
    UrgencyThresholds,
    UrgencyTier,
)
from sigmon_app.persistence.notification_store import NotificationStore

from helpers import make_candidate

MINUTE_MS = 60 * 1000


class TestDispatch:

    def test_warning_tier(self, manager, notifier):
        record = manager.dispatch(make_candidate(score=65))
        assert record is not None
        assert record.urgency_tier == UrgencyTier.WARNING
        assert record.status == DeliveryState.SENT
        assert record.dismissed is False
        notifier.deliver_with_retry.assert_called_once()

    def test_urgent_tier(self, manager):
        record = manager.dispatch(make_candidate(score=85))
        assert record.urgency_tier == UrgencyTier.URGENT

    def test_below_warning_threshold_not_recorded(self, manager, notifier):
        assert manager.dispatch(make_candidate(score=59.9)) is None
        assert manager.get_history() == []
        notifier.deliver_with_retry.assert_not_called()

    def test_inactive_symbol_not_dispatched(self, manager):
        assert manager.dispatch(make_candidate(symbol="BTC/USD", score=90)) is None
        assert manager.get_history() == []

    def test_disabled_tier_not_dispatched(self, manager):
        manager.update_preferences({"enable_warning": False})
        assert manager.dispatch(make_candidate(score=65)) is None
        assert manager.dispatch(make_candidate(symbol="EUR/USD", score=85)) is not None

    def test_record_carries_signal_identity(self, manager):
        record = manager.dispatch(make_candidate(direction=Direction.SHORT, score=70))
        assert record.signal_id == "XAU/USD:SHORT"
        assert record.kind == NotificationKind.SIGNAL
        assert record.details["entry_price"] == 100.0

    def test_delivery_failure_keeps_record(self, manager_factory, failing_notifier):
        manager = manager_factory(notifier_override=failing_notifier)

        with pytest.raises(ChannelDeliveryError) as exc_info:
            manager.dispatch(make_candidate(score=70))

        assert exc_info.value.notification_id == "n-1"
        history = manager.get_history()
        assert len(history) == 1
        assert history[0].status == DeliveryState.FAILED

    def test_unexpected_notifier_error_wrapped(self, manager_factory):
        broken = Mock()
        broken.name = "broken"
        broken.deliver_with_retry.side_effect = RuntimeError("socket closed")
        manager = manager_factory(notifier_override=broken)

        with pytest.raises(ChannelDeliveryError):
            manager.dispatch(make_candidate(score=70))
        assert manager.get_history()[0].status == DeliveryState.FAILED

    def test_no_notifier_leaves_record_pending(self, clock):
        manager = NotificationManager(
            preferences=Preferences(active_symbols=frozenset({"XAU/USD"})),
            clock=clock,
        )
        record = manager.dispatch(make_candidate(score=70))
        assert record.status == DeliveryState.PENDING
        assert [r.id for r in manager.get_pending()] == [record.id]


class TestCooldown:

    def test_same_symbol_direction_suppressed_inside_window(self, manager, clock):
        assert manager.dispatch(make_candidate(score=65)) is not None
        clock.advance(29 * MINUTE_MS)
        assert manager.dispatch(make_candidate(score=65)) is None
        assert len(manager.get_history()) == 1

    def test_warning_cooldown_expires(self, manager, clock):
        manager.dispatch(make_candidate(score=65))
        clock.advance(30 * MINUTE_MS)
        assert manager.dispatch(make_candidate(score=65)) is not None

    def test_urgent_cooldown_is_shorter(self, manager, clock):
        manager.dispatch(make_candidate(score=85))
        clock.advance(15 * MINUTE_MS)
        assert manager.dispatch(make_candidate(score=85)) is not None

    def test_opposite_direction_not_in_cooldown(self, manager):
        manager.dispatch(make_candidate(score=65))
        assert manager.is_in_cooldown("XAU/USD", Direction.LONG)
        assert not manager.is_in_cooldown("XAU/USD", Direction.SHORT)
        assert manager.dispatch(make_candidate(direction=Direction.SHORT, score=65)) is not None

    def test_notices_bypass_cooldown(self, manager):
        manager.dispatch(make_candidate(score=65))
        notice = manager.dispatch_notice("XAU/USD", Direction.LONG, "Stop moved to 100",
                                         signal_id="XAU/USD:LONG")
        assert notice.urgency_tier == UrgencyTier.INFO
        assert notice.kind == NotificationKind.STOP_MOVED
        assert len(manager.get_history()) == 2


class TestDismiss:

    def test_dismiss_marks_record(self, manager, clock):
        record = manager.dispatch(make_candidate(score=70))
        clock.advance(1000)
        dismissed = manager.dismiss(record.id)
        assert dismissed.dismissed is True
        assert dismissed.dismissed_at_ms == clock.now
        assert manager.get(record.id).dismissed is True

    def test_dismiss_is_idempotent(self, manager, clock):
        record = manager.dispatch(make_candidate(score=70))
        first = manager.dismiss(record.id)
        clock.advance(5000)
        second = manager.dismiss(record.id)
        assert second.dismissed is True
        assert second.dismissed_at_ms == first.dismissed_at_ms

    def test_dismiss_unknown_id(self, manager):
        with pytest.raises(NotificationNotFoundError) as exc_info:
            manager.dismiss("nope")
        assert exc_info.value.identifier == "nope"

    def test_returned_records_are_copies(self, manager):
        record = manager.dispatch(make_candidate(score=70))
        record.dismissed = True
        assert manager.get(record.id).dismissed is False


class TestHistory:

    def test_half_open_range(self, manager, clock):
        start = clock.now
        manager.dispatch(make_candidate(symbol="XAU/USD", score=70))
        clock.advance(1000)
        manager.dispatch(make_candidate(symbol="EUR/USD", score=70))
        clock.advance(1000)
        manager.dispatch(make_candidate(symbol="XAU/USD", direction=Direction.SHORT, score=70))

        assert [r.symbol for r in manager.get_history(start, start + 1000)] == ["XAU/USD"]
        assert len(manager.get_history(start + 1000, start + 2001)) == 2
        assert manager.get_history(start + 2001, None) == []

    def test_insertion_order(self, manager, clock):
        for symbol in ("XAU/USD", "EUR/USD"):
            manager.dispatch(make_candidate(symbol=symbol, score=70))
        assert [r.id for r in manager.get_history()] == ["n-1", "n-2"]

    def test_cleanup_keeps_history_in_store(self, manager_factory, clock, tmp_path):
        manager = manager_factory(store=NotificationStore(str(tmp_path / "signals.db")))
        start = clock.now
        manager.dispatch(make_candidate(score=70))
        clock.advance(91 * 24 * 60 * MINUTE_MS)
        manager.dispatch(make_candidate(symbol="EUR/USD", score=70))

        assert manager.cleanup() == 1
        assert manager.get("n-1") is None
        assert [r.symbol for r in manager.get_history()] == ["XAU/USD", "EUR/USD"]
        assert [r.id for r in manager.get_history(start, start + 1)] == ["n-1"]
        assert manager.get_history()[1].status == DeliveryState.SENT

    def test_dismiss_after_cleanup(self, manager_factory, clock, tmp_path):
        store = NotificationStore(str(tmp_path / "signals.db"))
        manager = manager_factory(store=store)
        manager.dispatch(make_candidate(score=70))
        clock.advance(91 * 24 * 60 * MINUTE_MS)
        manager.cleanup()

        dismissed = manager.dismiss("n-1")
        assert dismissed.dismissed
        assert dismissed.dismissed_at_ms == clock.now
        assert store.load_record("n-1").dismissed
        assert manager.get_history()[0].dismissed

        with pytest.raises(NotificationNotFoundError):
            manager.dismiss("missing")

    def test_cleanup_without_store_refused(self, manager, clock):
        manager.dispatch(make_candidate(score=70))
        clock.advance(91 * 24 * 60 * MINUTE_MS)

        with pytest.raises(StatePreconditionError):
            manager.cleanup()
        assert [r.id for r in manager.get_history()] == ["n-1"]


class TestPreferences:

    def test_partial_update_leaves_other_fields(self, manager):
        manager.update_preferences({"urgency_thresholds": {"urgent": 90}})
        prefs = manager.get_preferences()
        assert prefs.urgency_thresholds == UrgencyThresholds(warning=60.0, urgent=90.0)
        assert prefs.active_symbols == frozenset({"XAU/USD", "EUR/USD"})

    def test_active_symbols_replaced_wholesale(self, manager):
        manager.update_preferences({"active_symbols": ["GBP/USD"]})
        assert manager.get_active_symbols() == ["GBP/USD"]

    def test_channel_config_parsed(self, manager):
        manager.update_preferences({"channel_config": {"kind": "stdout", "format": "pretty"}})
        prefs = manager.get_preferences()
        assert prefs.channel_config.kind == ChannelKind.STDOUT
        assert manager.notifier.name == "stdout"

    def test_invalid_update_rejected(self, manager):
        with pytest.raises(ValidationError) as exc_info:
            manager.update_preferences({"active_symbols": "XAU/USD"})
        assert exc_info.value.field == "active_symbols"

    def test_thresholds_must_be_ordered(self, manager):
        with pytest.raises(ValidationError):
            manager.update_preferences({"urgency_thresholds": {"warning": 90, "urgent": 80}})

    def test_subscribe_and_unsubscribe(self, manager):
        assert manager.subscribe("GBP/USD") is True
        assert manager.subscribe("GBP/USD") is False
        assert manager.unsubscribe("XAU/USD") is True
        assert manager.unsubscribe("XAU/USD") is False
        assert manager.get_active_symbols() == ["EUR/USD", "GBP/USD"]

    def test_subscribe_all_and_none(self, manager):
        assert manager.subscribe_all(["GBP/USD", "USD/JPY"]) == 4
        assert manager.unsubscribe_all() == 4
        assert manager.get_active_symbols() == []

    def test_to_dict_redacts_token(self):
        prefs = Preferences().merged({
            "channel_config": parse_channel_config({"bot_token": "123456:ABC", "chat_id": "42"}),
        })
        assert prefs.to_dict()["channel_config"]["bot_token"] == "1234***"
        assert prefs.to_dict(redact=False)["channel_config"]["bot_token"] == "123456:ABC"

    def test_round_trip_through_dict(self):
        prefs = Preferences(active_symbols=frozenset({"XAU/USD"}), enable_urgent=False)
        assert Preferences.from_dict(prefs.to_dict(redact=False)) == prefs


class TestConcurrentDispatch:

    def test_concurrent_dispatch_and_update_lose_nothing(self, manager_factory):
        symbols = [f"SYM{i}" for i in range(20)]
        manager = manager_factory(symbols=symbols)

        def dispatch(symbol):
            manager.dispatch(make_candidate(symbol=symbol, score=70))

        def toggle():
            for _ in range(20):
                manager.update_preferences({"urgency_thresholds": {"urgent": 85}})

        threads = [threading.Thread(target=dispatch, args=(s,)) for s in symbols]
        threads.append(threading.Thread(target=toggle))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        history = manager.get_history()
        assert sorted(r.symbol for r in history) == sorted(symbols)
        assert len({r.id for r in history}) == 20

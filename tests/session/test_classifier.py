"""Tests for trading session classification and gate adjustments."""

from datetime import datetime, timedelta, timezone

import pytest

from sigmon_app.session.classifier import (
    ASIAN_CONFIG,
    SessionClassifier,
    TradingSession,
    Volatility,
    adjust_min_score,
    adjust_stop_multiplier,
    classify,
    describe,
    is_good_trading_time,
    position_size_multiplier,
)

from helpers import ASIAN_MS, LONDON_MS, NEW_YORK_MS, OVERLAP_MS, utc_ms


class TestClassify:
    """Hour-of-day bucketing in UTC."""

    @pytest.mark.parametrize("hour, expected", [
        (0, TradingSession.ASIAN),
        (6, TradingSession.ASIAN),
        (7, TradingSession.LONDON),
        (12, TradingSession.LONDON),
        (13, TradingSession.OVERLAP),
        (15, TradingSession.OVERLAP),
        (16, TradingSession.NEW_YORK),
        (21, TradingSession.NEW_YORK),
        (22, TradingSession.ASIAN),
        (23, TradingSession.ASIAN),
    ])
    def test_hour_boundaries(self, hour, expected):
        assert classify(utc_ms(hour)).session == expected

    def test_every_hour_maps_to_exactly_one_session(self):
        sessions = {classify(utc_ms(hour)).session for hour in range(24)}
        assert sessions == set(TradingSession)

    def test_overlap_wins_over_london_and_new_york(self):
        config = classify(utc_ms(14, 30))
        assert config.session == TradingSession.OVERLAP
        assert config.volatility == Volatility.VERY_HIGH

    def test_naive_datetime_treated_as_utc(self):
        assert classify(datetime(2024, 1, 15, 10, 0)).session == TradingSession.LONDON

    def test_aware_datetime_converted_to_utc(self):
        tokyo = timezone(timedelta(hours=9))
        # 19:00 in Tokyo is 10:00 UTC
        assert classify(datetime(2024, 1, 15, 19, 0, tzinfo=tokyo)).session == TradingSession.LONDON

    def test_session_config_values(self):
        assert classify(OVERLAP_MS).min_score == 45
        assert classify(LONDON_MS).stop_multiplier == 1.5
        assert classify(NEW_YORK_MS).min_score == 50
        asian = classify(ASIAN_MS)
        assert asian.min_score == 65
        assert asian.stop_multiplier == 2.0
        assert asian.position_size_multiplier == 0.5


class TestAdjustments:
    """Session-adjusted gate threshold and stop width."""

    def test_min_score_overlap_lowers_with_floor(self):
        assert adjust_min_score(60, TradingSession.OVERLAP) == 55
        assert adjust_min_score(48, TradingSession.OVERLAP) == 45

    def test_min_score_asian_raises_with_floor(self):
        assert adjust_min_score(60, TradingSession.ASIAN) == 75
        assert adjust_min_score(40, TradingSession.ASIAN) == 65

    @pytest.mark.parametrize("session", [TradingSession.LONDON, TradingSession.NEW_YORK])
    def test_min_score_unchanged_in_main_sessions(self, session):
        assert adjust_min_score(60, session) == 60

    def test_stop_multiplier(self):
        assert adjust_stop_multiplier(1.5, TradingSession.OVERLAP) == pytest.approx(1.2)
        assert adjust_stop_multiplier(1.5, TradingSession.ASIAN) == pytest.approx(1.95)
        assert adjust_stop_multiplier(1.5, TradingSession.LONDON) == 1.5
        assert adjust_stop_multiplier(1.5, TradingSession.NEW_YORK) == 1.5

    def test_position_size_multiplier(self):
        assert position_size_multiplier(TradingSession.ASIAN) == 0.5
        assert position_size_multiplier(TradingSession.LONDON) == 1.0


class TestTradingTimeHelpers:

    def test_is_good_trading_time(self):
        good, reason, config = is_good_trading_time(OVERLAP_MS)
        assert good is True
        assert "Overlap" in reason
        assert config.session == TradingSession.OVERLAP

        good, _, config = is_good_trading_time(ASIAN_MS)
        assert good is False
        assert config is ASIAN_CONFIG

    def test_describe_mentions_widened_stops_in_asia(self):
        text = describe(ASIAN_CONFIG)
        assert "Asian session" in text
        assert "Stops widened" in text

    def test_to_dict_is_serializable(self):
        data = classify(LONDON_MS).to_dict()
        assert data["session"] == "LONDON"
        assert data["min_score"] == 50


class TestSessionClassifier:

    def test_uses_injected_clock(self):
        classifier = SessionClassifier(clock=lambda: ASIAN_MS)
        assert classifier.classify().session == TradingSession.ASIAN

    def test_explicit_timestamp_overrides_clock(self):
        classifier = SessionClassifier(clock=lambda: ASIAN_MS)
        assert classifier.classify(LONDON_MS).session == TradingSession.LONDON

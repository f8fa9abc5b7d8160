"""Tests for audit-trail logging helpers."""

from unittest.mock import Mock

import pytest

from sigmon_app.logging.config import (
    configure_logging,
    get_gating_logger,
    get_stop_logger,
    log_gate_decision,
    log_stop_move,
)


class TestLoggingHelpers:

    def setup_method(self):
        self.logger = Mock()
        self.bound = Mock()
        self.logger.bind.return_value = self.bound

    def test_gate_pass(self):
        log_gate_decision(self.logger, "XAU/USD", True, 72.456, 50.0, "LONDON", "score above threshold")

        self.logger.bind.assert_called_once_with(
            symbol="XAU/USD",
            gate_result="PASS",
            score=72.46,
            threshold=50.0,
            session="LONDON",
            reason="score above threshold",
        )
        self.bound.info.assert_called_once_with("Gate passed")

    def test_gate_reject_with_context(self):
        rebound = Mock()
        self.bound.bind.return_value = rebound

        log_gate_decision(self.logger, "EUR/USD", False, 55.0, 65.0, "ASIAN", "below threshold",
                          context={"base_min_score": 50.0})

        assert self.logger.bind.call_args.kwargs["gate_result"] == "FAIL"
        self.bound.bind.assert_called_once_with(context={"base_min_score": 50.0})
        rebound.info.assert_called_once_with("Gate rejected candidate")

    def test_stop_move(self):
        log_stop_move(self.logger, "XAU/USD:LONG", 95.0, 100.0, "BREAKEVEN", 30.0001)

        kwargs = self.logger.bind.call_args.kwargs
        assert kwargs["signal_id"] == "XAU/USD:LONG"
        assert kwargs["new_stop"] == 100.0
        assert kwargs["profit_percent"] == 30.0
        self.bound.info.assert_called_once_with("Trailing stop moved")


class TestConfigureLogging:

    @pytest.mark.parametrize("format_json", [True, False])
    def test_configure_and_bind(self, format_json):
        configure_logging(level="DEBUG", format_json=format_json, include_caller=True)

        get_gating_logger("tests.gating").info("gate check", symbol="XAU/USD")
        get_stop_logger("tests.stops").debug("stop check", signal_id="sig-1")

    def test_invalid_level(self):
        with pytest.raises(AttributeError):
            configure_logging(level="LOUD")

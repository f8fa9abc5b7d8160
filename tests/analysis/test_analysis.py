"""Tests for engine result normalization and auxiliary indicators."""

import pytest

from sigmon_app.analysis import calculate_rsi, coerce_result
from sigmon_app.models.signals import AnalysisResult, Direction

from helpers import make_candidate, make_candles


class TestCoerceResult:

    def test_passthrough(self):
        result = AnalysisResult(signal=make_candidate(), has_valid_setup=True)
        assert coerce_result("XAU/USD", result) is result

    def test_camel_case_mapping(self):
        raw = {
            "pools": [{"price": 2030}],
            "sweeps": [],
            "structures": [{"type": "BOS"}],
            "hasValidSetup": True,
            "blockingReasons": [],
            "signal": {
                "direction": "BUY",
                "score": {"totalScore": 74.5, "components": {}},
                "reasoning": "Sweep + BOS",
                "entryPrice": 2031.5,
                "stopLoss": 2025.0,
                "takeProfit": 2045.0,
                "atr": 3.2,
            },
        }
        result = coerce_result("XAU/USD", raw)

        assert result.has_valid_setup is True
        assert result.structures == [{"type": "BOS"}]
        signal = result.signal
        assert signal.symbol == "XAU/USD"
        assert signal.direction == Direction.LONG
        assert signal.score == 74.5
        assert signal.stop_price == 2025.0
        assert signal.target_price == 2045.0
        assert signal.identity == "XAU/USD:LONG"

    def test_snake_case_mapping(self):
        raw = {
            "has_valid_setup": False,
            "blocking_reasons": ["outside killzone"],
            "signal": {
                "symbol": "EUR/USD",
                "direction": "sell",
                "score": 66,
                "entry_price": 1.1,
                "stop_price": 1.102,
                "target_price": 1.095,
                "atr": 0.001,
                "signal_id": "sig-9",
            },
        }
        result = coerce_result("EUR/USD", raw)

        assert result.blocking_reasons == ["outside killzone"]
        assert result.signal.direction == Direction.SHORT
        assert result.signal.identity == "sig-9"
        assert result.signal.reasoning == ""

    def test_no_signal(self):
        result = coerce_result("XAU/USD", {"pools": None})
        assert result.signal is None
        assert result.pools == []

    def test_bad_direction(self):
        with pytest.raises(ValueError):
            coerce_result("XAU/USD", {"signal": {"direction": "sideways", "score": 1,
                                                 "entry_price": 1, "stop_price": 1,
                                                 "target_price": 1, "atr": 1}})


class TestRsi:

    def test_not_enough_candles(self):
        assert calculate_rsi(make_candles([1.0] * 14)) == []

    def test_monotonic_rise(self):
        rsi = calculate_rsi(make_candles([float(i) for i in range(20)]))
        assert len(rsi) == 6
        assert all(value == 100.0 for value in rsi)

    def test_monotonic_fall(self):
        rsi = calculate_rsi(make_candles([float(20 - i) for i in range(16)]))
        assert rsi == [pytest.approx(0.0), pytest.approx(0.0)]

    def test_balanced_moves(self):
        closes = [100.0, 101.0] * 8
        rsi = calculate_rsi(make_candles(closes), period=4)
        assert rsi[0] == pytest.approx(50.0)

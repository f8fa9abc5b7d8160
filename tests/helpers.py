"""Test doubles and builders shared across test modules."""

from datetime import datetime, timezone
from typing import Any, Optional

from sigmon_app.analysis.base import AnalysisEngine, CandleSource
from sigmon_app.models.signals import Candle, CandidateSignal, Direction


def utc_ms(hour: int, minute: int = 0, day: int = 15) -> int:
    """Epoch ms for a UTC wall-clock time on a fixed January 2024 weekday."""
    return int(datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc).timestamp() * 1000)


LONDON_MS = utc_ms(10)
OVERLAP_MS = utc_ms(14)
NEW_YORK_MS = utc_ms(18)
ASIAN_MS = utc_ms(2)


class FakeClock:
    """Settable epoch-ms clock."""

    def __init__(self, now: int = LONDON_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_candles(closes: list[float], start_ms: int = LONDON_MS) -> list[Candle]:
    """Fifteen-minute candles with the given closes."""
    return [
        Candle(
            timestamp=start_ms + i * 15 * 60 * 1000,
            open=close,
            high=close + 0.5,
            low=close - 0.5,
            close=close,
            volume=1000.0,
        )
        for i, close in enumerate(closes)
    ]


def make_candidate(
    symbol: str = "XAU/USD",
    direction: Direction = Direction.LONG,
    score: float = 75.0,
    entry: float = 100.0,
    target: Optional[float] = None,
    atr: float = 2.0,
    signal_id: Optional[str] = None,
) -> CandidateSignal:
    sign = direction.sign
    return CandidateSignal(
        symbol=symbol,
        direction=direction,
        score=score,
        reasoning="Liquidity sweep below Asian low with bullish structure shift",
        entry_price=entry,
        stop_price=entry - sign * 5.0,
        target_price=target if target is not None else entry + sign * 10.0,
        atr=atr,
        signal_id=signal_id,
    )


class StaticCandleSource(CandleSource):
    """Returns preset candles per symbol; raises for symbols mapped to an exception."""

    def __init__(self, candles: dict[str, Any]):
        self.candles = candles
        self.calls: list[str] = []

    def fetch_candles(self, symbol, interval, limit):
        self.calls.append(symbol)
        value = self.candles[symbol]
        if isinstance(value, Exception):
            raise value
        return value


class ScriptedEngine(AnalysisEngine):
    """Returns a preset candidate (or None) per symbol; raises for symbols mapped to an exception."""

    def __init__(self, signals: dict[str, Optional[CandidateSignal]], base_min_score: float = 60.0):
        self.signals = signals
        self.base_min_score = base_min_score
        self.calls: list[tuple[str, dict]] = []

    def analyze(self, symbol, candles, auxiliary_indicators=None):
        self.calls.append((symbol, auxiliary_indicators or {}))
        signal = self.signals.get(symbol)
        if isinstance(signal, Exception):
            raise signal
        return {
            "pools": [],
            "sweeps": [],
            "structures": [],
            "signal": signal,
            "hasValidSetup": signal is not None,
            "blockingReasons": [] if signal else ["no liquidity sweep"],
        }



"""
Signal and market data models exchanged with the external analysis engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Direction(str, Enum):
    """Trade direction."""
    LONG = "LONG"
    SHORT = "SHORT"

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        """Accept LONG/SHORT as well as the BUY/SELL aliases, case-insensitively."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        if text in ("LONG", "BUY"):
            return cls.LONG
        if text in ("SHORT", "SELL"):
            return cls.SHORT
        raise ValueError(f"Unknown direction: {value!r}")

    @property
    def sign(self) -> int:
        return 1 if self is Direction.LONG else -1


@dataclass(frozen=True)
class Candle:
    """OHLCV bar; timestamp is epoch milliseconds."""
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class CandidateSignal:
    """Unconfirmed trade suggestion produced by the analysis engine."""
    symbol: str
    direction: Direction
    score: float
    reasoning: str
    entry_price: float
    stop_price: float
    target_price: float
    atr: float
    signal_id: Optional[str] = None

    @property
    def identity(self) -> str:
        """Signal identifier used for trailing stop tracking."""
        return self.signal_id or f"{self.symbol}:{self.direction.value}"


@dataclass(frozen=True)
class AnalysisResult:
    """Output of one analysis engine call."""
    pools: list[Any] = field(default_factory=list)
    sweeps: list[Any] = field(default_factory=list)
    structures: list[Any] = field(default_factory=list)
    signal: Optional[CandidateSignal] = None
    has_valid_setup: bool = False
    blocking_reasons: list[str] = field(default_factory=list)

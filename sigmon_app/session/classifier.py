"""
Session classification over the 24-hour UTC clock.

Hours are half-open intervals [start, end):

    [13, 16)  OVERLAP   checked first, wins over London / New York
    [7, 16)   LONDON
    [13, 22)  NEW_YORK
    otherwise ASIAN     [22, 24) and [0, 7)

Everything here is a pure function of its inputs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..utils.time import Timestamp, utc_hour


class TradingSession(str, Enum):
    """UTC time-of-day buckets."""
    ASIAN = "ASIAN"
    LONDON = "LONDON"
    NEW_YORK = "NEW_YORK"
    OVERLAP = "OVERLAP"


class Volatility(str, Enum):
    """Expected volatility tier of a session."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


@dataclass(frozen=True)
class SessionConfig:
    """Tuning parameters for the active session."""
    session: TradingSession
    volatility: Volatility
    min_score: float
    stop_multiplier: float
    position_size_multiplier: float
    description: str
    recommendation: str

    def to_dict(self) -> dict:
        return {
            "session": self.session.value,
            "volatility": self.volatility.value,
            "min_score": self.min_score,
            "stop_multiplier": self.stop_multiplier,
            "position_size_multiplier": self.position_size_multiplier,
            "description": self.description,
            "recommendation": self.recommendation,
        }


OVERLAP_CONFIG = SessionConfig(
    session=TradingSession.OVERLAP,
    volatility=Volatility.VERY_HIGH,
    min_score=45,
    stop_multiplier=1.2,
    position_size_multiplier=1.0,
    description="London / New York overlap",
    recommendation="Best window: peak volatility and liquidity",
)

LONDON_CONFIG = SessionConfig(
    session=TradingSession.LONDON,
    volatility=Volatility.HIGH,
    min_score=50,
    stop_multiplier=1.5,
    position_size_multiplier=1.0,
    description="London session",
    recommendation="Good window for trading",
)

NEW_YORK_CONFIG = SessionConfig(
    session=TradingSession.NEW_YORK,
    volatility=Volatility.HIGH,
    min_score=50,
    stop_multiplier=1.5,
    position_size_multiplier=1.0,
    description="New York session",
    recommendation="Good window for trading",
)

ASIAN_CONFIG = SessionConfig(
    session=TradingSession.ASIAN,
    volatility=Volatility.LOW,
    min_score=65,
    stop_multiplier=2.0,
    position_size_multiplier=0.5,
    description="Asian session",
    recommendation="Caution: low volatility, frequent false breakouts. Halve position size.",
)

SESSION_CONFIGS = {
    config.session: config
    for config in (OVERLAP_CONFIG, LONDON_CONFIG, NEW_YORK_CONFIG, ASIAN_CONFIG)
}


def classify(timestamp: Optional[Timestamp] = None) -> SessionConfig:
    """
    Classify a timestamp into its trading session.

    Args:
        timestamp: datetime (naive means UTC) or epoch milliseconds; None means now

    Returns:
        The single SessionConfig active at that instant
    """
    hour = utc_hour(timestamp)

    if 13 <= hour < 16:
        return OVERLAP_CONFIG
    if 7 <= hour < 16:
        return LONDON_CONFIG
    if 13 <= hour < 22:
        return NEW_YORK_CONFIG
    return ASIAN_CONFIG


def adjust_min_score(base_score: float, session: TradingSession) -> float:
    """Session-adjusted minimum score for the threshold gate."""
    if session == TradingSession.OVERLAP:
        return max(45, base_score - 5)
    if session == TradingSession.ASIAN:
        return max(65, base_score + 15)
    return base_score


def adjust_stop_multiplier(base_multiplier: float, session: TradingSession) -> float:
    """Session-adjusted ATR multiplier for the initial stop distance."""
    if session == TradingSession.OVERLAP:
        return base_multiplier * 0.8
    if session == TradingSession.ASIAN:
        return base_multiplier * 1.3
    return base_multiplier


def position_size_multiplier(session: TradingSession) -> float:
    """Recommended position size scaling for a session."""
    return SESSION_CONFIGS[session].position_size_multiplier


def is_good_trading_time(timestamp: Optional[Timestamp] = None) -> tuple[bool, str, SessionConfig]:
    """Whether the session at ``timestamp`` is favourable, with a reason."""
    config = classify(timestamp)

    if config.session == TradingSession.OVERLAP:
        return True, "Overlap: best time to trade", config
    if config.session in (TradingSession.LONDON, TradingSession.NEW_YORK):
        return True, "High volatility: good time to trade", config
    return False, "Asian session: low volatility, frequent false breakouts", config


def describe(config: SessionConfig) -> str:
    """Human-readable session summary for notifications and prompts."""
    lines = [
        f"Session: {config.description}",
        f"Volatility: {config.volatility.value}",
        f"Minimum score: {config.min_score:g}/100",
        config.recommendation,
    ]
    if config.session == TradingSession.ASIAN:
        lines.append(f"Stops widened (ATR x {config.stop_multiplier:g}), "
                     f"position size x {config.position_size_multiplier:g}")
    elif config.session == TradingSession.OVERLAP:
        lines.append(f"Stops tightened (ATR x {config.stop_multiplier:g})")
    return "\n".join(lines)


class SessionClassifier:
    """
    Injectable wrapper over the session functions.

    The monitor holds one of these so tests can pin the clock.
    """

    def __init__(self, clock=None):
        self._clock = clock

    def classify(self, timestamp: Optional[Timestamp] = None) -> SessionConfig:
        if timestamp is None and self._clock is not None:
            timestamp = self._clock()
        return classify(timestamp)

    @staticmethod
    def adjust_min_score(base_score: float, session: TradingSession) -> float:
        return adjust_min_score(base_score, session)

    @staticmethod
    def adjust_stop_multiplier(base_multiplier: float, session: TradingSession) -> float:
        return adjust_stop_multiplier(base_multiplier, session)

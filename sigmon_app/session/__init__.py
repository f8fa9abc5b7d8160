"""
Trading session classification and session-based parameter tuning.
"""
from .classifier import (
    SessionClassifier,
    SessionConfig,
    TradingSession,
    Volatility,
    adjust_min_score,
    adjust_stop_multiplier,
    classify,
    position_size_multiplier,
)

__all__ = [
    "SessionClassifier",
    "SessionConfig",
    "TradingSession",
    "Volatility",
    "adjust_min_score",
    "adjust_stop_multiplier",
    "classify",
    "position_size_multiplier",
]

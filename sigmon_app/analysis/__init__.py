"""
Contracts for the external market data source and analysis engine.
"""
from .base import AnalysisEngine, CandleSource, coerce_result
from .indicators import calculate_rsi

__all__ = ["AnalysisEngine", "CandleSource", "calculate_rsi", "coerce_result"]

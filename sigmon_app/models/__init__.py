"""
Shared data models.
"""
from .signals import AnalysisResult, Candle, CandidateSignal, Direction

__all__ = ["AnalysisResult", "Candle", "CandidateSignal", "Direction"]

"""
Per-signal trailing stop state and advancement rules.
"""
from .models import StopPhase, StopUpdate, TrailingStopState
from .tracker import TrailingStopTracker

__all__ = ["StopPhase", "StopUpdate", "TrailingStopState", "TrailingStopTracker"]

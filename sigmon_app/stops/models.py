"""
Trailing stop data models.

State records are immutable; the tracker replaces them on every move.
"""

from dataclasses import dataclass, replace
from enum import Enum

from ..models.signals import Direction


class StopPhase(str, Enum):
    """Where a tracked stop sits relative to the entry."""
    ACTIVE = "ACTIVE"          # Still at (or short of) the initial risk
    BREAKEVEN = "BREAKEVEN"    # Moved to entry on this update
    TRAILING = "TRAILING"      # Locking in profit on this update


@dataclass(frozen=True)
class TrailingStopState:
    """Stop state for one open signal."""
    signal_id: str
    entry_price: float
    initial_stop: float
    current_stop: float
    direction: Direction
    atr: float
    target_price: float

    @property
    def target_distance(self) -> float:
        return (self.target_price - self.entry_price) * self.direction.sign

    def profit_distance(self, price: float) -> float:
        return (price - self.entry_price) * self.direction.sign

    def profit_percent(self, price: float) -> float:
        """Progress toward the target, in percent of the target distance."""
        return self.profit_distance(price) * 100 / self.target_distance

    def improves(self, candidate: float) -> bool:
        """Whether ``candidate`` strictly reduces risk versus the current stop."""
        if self.direction is Direction.LONG:
            return candidate > self.current_stop
        return candidate < self.current_stop

    def is_stopped_out(self, price: float) -> bool:
        if self.direction is Direction.LONG:
            return price <= self.current_stop
        return price >= self.current_stop

    def is_target_hit(self, price: float) -> bool:
        if self.direction is Direction.LONG:
            return price >= self.target_price
        return price <= self.target_price

    def with_stop(self, new_stop: float) -> "TrailingStopState":
        return replace(self, current_stop=new_stop)

    def to_dict(self) -> dict:
        return {
            "signal_id": self.signal_id,
            "entry_price": self.entry_price,
            "initial_stop": self.initial_stop,
            "current_stop": self.current_stop,
            "direction": self.direction.value,
            "atr": self.atr,
            "target_price": self.target_price,
        }


@dataclass(frozen=True)
class StopUpdate:
    """Result of applying one price to a tracked stop."""
    new_stop: float
    moved: bool
    profit_percent: float
    phase: StopPhase

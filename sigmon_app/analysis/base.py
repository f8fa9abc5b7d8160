"""
Abstract collaborators consumed by the signal monitor.

The liquidity/market-structure engine and the price API live outside this
package; the monitor only depends on these two contracts.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Union

from ..models.signals import AnalysisResult, Candle, CandidateSignal, Direction


class CandleSource(ABC):
    """Supplies recent candles for a symbol."""

    @abstractmethod
    def fetch_candles(self, symbol: str, interval: str, limit: int) -> list[Candle]:
        """
        Fetch the most recent candles, oldest first.

        Raises:
            UpstreamUnavailableError: when the data provider fails
        """


class AnalysisEngine(ABC):
    """Turns candles into pools, sweeps, structures and at most one candidate."""

    #: Engine's own minimum score before session adjustment
    base_min_score: float = 60.0

    @abstractmethod
    def analyze(
        self,
        symbol: str,
        candles: list[Candle],
        auxiliary_indicators: Optional[dict[str, Any]] = None
    ) -> Union[AnalysisResult, Mapping[str, Any]]:
        """Run analysis; may return an AnalysisResult or an equivalent mapping."""


def _pick(data: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in data:
            return data[name]
    return default


def coerce_signal(symbol: str, raw: Union[CandidateSignal, Mapping[str, Any], None]) -> Optional[CandidateSignal]:
    """Normalize a raw engine signal (snake_case or camelCase keys)."""
    if raw is None or isinstance(raw, CandidateSignal):
        return raw

    score = _pick(raw, "score", "totalScore")
    if isinstance(score, Mapping):
        score = _pick(score, "total_score", "totalScore", default=0.0)

    return CandidateSignal(
        symbol=_pick(raw, "symbol", default=symbol),
        direction=Direction.parse(raw["direction"]),
        score=float(score),
        reasoning=str(_pick(raw, "reasoning", default="")),
        entry_price=float(_pick(raw, "entry_price", "entryPrice")),
        stop_price=float(_pick(raw, "stop_price", "stopPrice", "stopLoss")),
        target_price=float(_pick(raw, "target_price", "targetPrice", "takeProfit")),
        atr=float(raw["atr"]),
        signal_id=_pick(raw, "signal_id", "id"),
    )


def coerce_result(symbol: str, raw: Union[AnalysisResult, Mapping[str, Any]]) -> AnalysisResult:
    """Normalize whatever the engine returned into an AnalysisResult."""
    if isinstance(raw, AnalysisResult):
        return raw

    return AnalysisResult(
        pools=list(raw.get("pools") or []),
        sweeps=list(raw.get("sweeps") or []),
        structures=list(raw.get("structures") or []),
        signal=coerce_signal(symbol, raw.get("signal")),
        has_valid_setup=bool(_pick(raw, "has_valid_setup", "hasValidSetup", default=False)),
        blocking_reasons=list(_pick(raw, "blocking_reasons", "blockingReasons", default=[]) or []),
    )

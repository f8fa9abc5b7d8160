"""Auxiliary indicators passed to the analysis engine."""

from ..models.signals import Candle


def calculate_rsi(candles: list[Candle], period: int = 14) -> list[float]:
    """
    Rolling RSI over candle closes using simple averages of gains and losses.

    Returns one value per window ending at index ``period`` onwards; an empty
    list when there are not enough candles.
    """
    if len(candles) < period + 1:
        return []

    closes = [c.close for c in candles]
    changes = [closes[i + 1] - closes[i] for i in range(len(closes) - 1)]
    rsi: list[float] = []

    for end in range(period, len(closes)):
        window = changes[end - period:end]
        gains = sum(c for c in window if c > 0)
        losses = sum(-c for c in window if c < 0)

        if losses == 0:
            rsi.append(100.0)
        else:
            rs = (gains / period) / (losses / period)
            rsi.append(100 - 100 / (1 + rs))

    return rsi

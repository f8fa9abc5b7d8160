"""Default configuration parameters for the signal monitor."""

from dataclasses import dataclass, field
from typing import Optional


MINUTE_MS = 60 * 1000


@dataclass(frozen=True)
class MonitorParams:
    """Control loop parameters."""
    interval_ms: int = 10 * MINUTE_MS               # Tick period
    candle_interval: str = "15min"                  # Candle timeframe requested from the source
    candle_limit: int = 100                         # Candles per fetch
    fetch_timeout_seconds: float = 30.0             # Bound on fetch + analysis per symbol
    dispatch_timeout_seconds: float = 30.0          # Bound on notification dispatch per symbol
    max_workers: int = 8                            # Concurrent symbol units per tick
    base_atr_multiplier: float = 1.5                # Initial stop distance in ATRs before session scaling
    run_immediately: bool = True                    # First tick fires on start()


@dataclass(frozen=True)
class NotificationParams:
    """Urgency thresholds, cooldowns and delivery retry policy."""
    warning_threshold: float = 60.0
    urgent_threshold: float = 80.0
    warning_cooldown_ms: int = 30 * MINUTE_MS
    urgent_cooldown_ms: int = 15 * MINUTE_MS
    retention_days: int = 90
    max_retries: int = 3
    retry_delay_seconds: float = 5.0


@dataclass(frozen=True)
class PreferenceDefaults:
    """Initial user preferences."""
    active_symbols: tuple[str, ...] = ("XAU/USD", "XAG/USD", "EUR/USD", "GBP/USD")
    enable_warning: bool = True
    enable_urgent: bool = True


@dataclass(frozen=True)
class SymbolInfo:
    """Catalogue entry for a symbol that may be monitored."""
    symbol: str
    display_name: str
    enabled: bool = False
    interval: str = "15min"


AVAILABLE_SYMBOLS: tuple[SymbolInfo, ...] = (
    # Precious metals
    SymbolInfo("XAU/USD", "Gold", enabled=True),
    SymbolInfo("XAG/USD", "Silver", enabled=True),
    # FX majors
    SymbolInfo("EUR/USD", "Euro / US Dollar", enabled=True),
    SymbolInfo("GBP/USD", "Pound / US Dollar", enabled=True),
    SymbolInfo("USD/JPY", "US Dollar / Yen"),
    SymbolInfo("USD/CHF", "US Dollar / Franc"),
    SymbolInfo("AUD/USD", "Australian Dollar / US Dollar"),
    SymbolInfo("USD/CAD", "US Dollar / Canadian Dollar"),
    # Commodities
    SymbolInfo("CL", "WTI Crude Oil"),
    # Crypto
    SymbolInfo("BTC/USD", "Bitcoin"),
    SymbolInfo("ETH/USD", "Ethereum"),
)


def find_symbol(symbol: str) -> Optional[SymbolInfo]:
    """Look up a catalogue entry by symbol, case-insensitively."""
    wanted = symbol.strip().upper()
    for info in AVAILABLE_SYMBOLS:
        if info.symbol.upper() == wanted:
            return info
    return None


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    monitor: MonitorParams = field(default_factory=MonitorParams)
    notifications: NotificationParams = field(default_factory=NotificationParams)
    preferences: PreferenceDefaults = field(default_factory=PreferenceDefaults)


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        monitor=MonitorParams(),
        notifications=NotificationParams(),
        preferences=PreferenceDefaults(),
    )

"""
Configuration defaults, loading and validation.
"""
from .defaults import (
    AVAILABLE_SYMBOLS,
    DefaultConfig,
    MonitorParams,
    NotificationParams,
    PreferenceDefaults,
    SymbolInfo,
    find_symbol,
    get_default_config,
)
from .loader import ConfigLoader
from .validation import ConfigValidator, FieldIssue

__all__ = [
    "AVAILABLE_SYMBOLS",
    "ConfigLoader",
    "ConfigValidator",
    "DefaultConfig",
    "FieldIssue",
    "MonitorParams",
    "NotificationParams",
    "PreferenceDefaults",
    "SymbolInfo",
    "find_symbol",
    "get_default_config",
]

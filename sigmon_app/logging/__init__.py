"""
Structured logging for the signal monitor.
"""
from .config import (
    configure_logging,
    get_gating_logger,
    get_logger,
    get_stop_logger,
    log_gate_decision,
    log_stop_move,
)

__all__ = [
    "configure_logging",
    "get_gating_logger",
    "get_logger",
    "get_stop_logger",
    "log_gate_decision",
    "log_stop_move",
]

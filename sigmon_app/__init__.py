"""
SigMon App - Session-aware Signal Monitoring & Alerting Engine

Continuously evaluates market data for a configurable set of symbols,
gates raw analysis output by trading-session thresholds, manages trailing
stops for signals in flight and dispatches deduplicated alerts to a
notification channel.
"""

__version__ = "0.1.0"
__author__ = "SigMon Team"

"""
Structured logging setup for the signal monitor.

Every module logs through structlog. Two audit trails get their own bound
loggers so they can be filtered downstream: session gate decisions
(``subsystem="gating"``) and trailing stop moves (``subsystem="trailing_stop"``).
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger, Processor

GATING_SUBSYSTEM = "gating"
STOP_SUBSYSTEM = "trailing_stop"


def _build_processors(
    format_json: bool,
    include_timestamp: bool,
    include_caller: bool,
    extra_processors: Optional[list[Processor]]
) -> list[Processor]:
    chain: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))

    if include_caller:
        chain.append(structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ))

    chain.extend(extra_processors or [])

    # Renderer must be last
    if format_json:
        chain.append(structlog.processors.JSONRenderer())
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return chain


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list[Processor]] = None
) -> None:
    """
    Configure stdlib logging and structlog once per process.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: One JSON object per line instead of console output
        include_timestamp: Add an ISO8601 UTC ``timestamp`` key
        include_caller: Add the calling module and line number
        extra_processors: Processors inserted just before the renderer

    Raises:
        AttributeError: if ``level`` is not a logging level name
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s")
    logging.getLogger().setLevel(log_level)
    # werkzeug request lines stay at WARNING and above
    logging.getLogger("werkzeug").setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=_build_processors(format_json, include_timestamp, include_caller, extra_processors),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    return structlog.get_logger(name)


def get_gating_logger(name: str) -> FilteringBoundLogger:
    """Logger for session threshold gate decisions."""
    return get_logger(name).bind(subsystem=GATING_SUBSYSTEM, audit_trail=True)


def get_stop_logger(name: str) -> FilteringBoundLogger:
    """Logger for trailing stop movements."""
    return get_logger(name).bind(subsystem=STOP_SUBSYSTEM, audit_trail=True)


def log_gate_decision(
    logger: FilteringBoundLogger,
    symbol: str,
    passed: bool,
    score: float,
    threshold: float,
    session: str,
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Record whether a candidate cleared its session-adjusted minimum score.

    Args:
        logger: Usually a gating logger
        symbol: Symbol whose candidate was evaluated
        passed: Whether ``score >= threshold``
        score: Candidate score, rounded to two places in the event
        threshold: Session-adjusted minimum score
        session: Active session name
        reason: Short human-readable explanation
        context: Extra keys bound under ``context``
    """
    event = logger.bind(
        symbol=symbol,
        gate_result="PASS" if passed else "FAIL",
        score=round(score, 2),
        threshold=threshold,
        session=session,
        reason=reason,
    )
    if context:
        event = event.bind(context=context)

    event.info("Gate passed" if passed else "Gate rejected candidate")


def log_stop_move(
    logger: FilteringBoundLogger,
    signal_id: str,
    old_stop: float,
    new_stop: float,
    phase: str,
    profit_percent: float
) -> None:
    logger.bind(
        signal_id=signal_id,
        old_stop=old_stop,
        new_stop=new_stop,
        phase=phase,
        profit_percent=round(profit_percent, 2),
    ).info("Trailing stop moved")

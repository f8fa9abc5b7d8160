"""
Notification data models.

NotificationRecord is append-only: after creation only the dismissal flag
and delivery bookkeeping change. Preferences are merged, never replaced.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

from ..config.channels import ChannelConfig, parse_channel_config
from ..config.defaults import NotificationParams, PreferenceDefaults
from ..models.signals import Direction


class UrgencyTier(str, Enum):
    """Notification priority derived from score."""
    INFO = "INFO"
    WARNING = "WARNING"
    URGENT = "URGENT"


class NotificationKind(str, Enum):
    """What a notification is about."""
    SIGNAL = "SIGNAL"
    STOP_MOVED = "STOP_MOVED"
    SIGNAL_CLOSED = "SIGNAL_CLOSED"


class DeliveryState(str, Enum):
    """Outbound delivery bookkeeping."""
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


@dataclass
class NotificationRecord:
    """One dispatched notification."""
    id: str
    symbol: str
    direction: Direction
    score: float
    urgency_tier: UrgencyTier
    reasoning: str
    timestamp_ms: int
    dismissed: bool = False
    signal_id: Optional[str] = None
    kind: NotificationKind = NotificationKind.SIGNAL
    status: DeliveryState = DeliveryState.PENDING
    sent_at_ms: Optional[int] = None
    dismissed_at_ms: Optional[int] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "direction": self.direction.value,
            "score": self.score,
            "urgency_tier": self.urgency_tier.value,
            "reasoning": self.reasoning,
            "timestamp_ms": self.timestamp_ms,
            "dismissed": self.dismissed,
            "signal_id": self.signal_id,
            "kind": self.kind.value,
            "status": self.status.value,
            "sent_at_ms": self.sent_at_ms,
            "dismissed_at_ms": self.dismissed_at_ms,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationRecord":
        return cls(
            id=data["id"],
            symbol=data["symbol"],
            direction=Direction.parse(data["direction"]),
            score=float(data["score"]),
            urgency_tier=UrgencyTier(data["urgency_tier"]),
            reasoning=data.get("reasoning", ""),
            timestamp_ms=int(data["timestamp_ms"]),
            dismissed=bool(data.get("dismissed", False)),
            signal_id=data.get("signal_id"),
            kind=NotificationKind(data.get("kind", NotificationKind.SIGNAL.value)),
            status=DeliveryState(data.get("status", DeliveryState.PENDING.value)),
            sent_at_ms=data.get("sent_at_ms"),
            dismissed_at_ms=data.get("dismissed_at_ms"),
            details=dict(data.get("details") or {}),
        )


@dataclass(frozen=True)
class UrgencyThresholds:
    """Score cut-offs for WARNING and URGENT tiers."""
    warning: float = 60.0
    urgent: float = 80.0

    def tier_for(self, score: float) -> Optional[UrgencyTier]:
        """Urgency for a score, or None when below the warning threshold."""
        if score >= self.urgent:
            return UrgencyTier.URGENT
        if score >= self.warning:
            return UrgencyTier.WARNING
        return None


@dataclass(frozen=True)
class Preferences:
    """Process-wide notification preferences."""
    active_symbols: frozenset[str] = frozenset()
    urgency_thresholds: UrgencyThresholds = field(default_factory=UrgencyThresholds)
    channel_config: Optional[ChannelConfig] = None
    enable_warning: bool = True
    enable_urgent: bool = True

    @classmethod
    def from_defaults(
        cls,
        defaults: Optional[PreferenceDefaults] = None,
        params: Optional[NotificationParams] = None
    ) -> "Preferences":
        defaults = defaults or PreferenceDefaults()
        params = params or NotificationParams()
        return cls(
            active_symbols=frozenset(defaults.active_symbols),
            urgency_thresholds=UrgencyThresholds(
                warning=params.warning_threshold,
                urgent=params.urgent_threshold,
            ),
            enable_warning=defaults.enable_warning,
            enable_urgent=defaults.enable_urgent,
        )

    def merged(self, partial: dict[str, Any]) -> "Preferences":
        """
        Apply a partial update.

        Absent keys are left untouched; ``active_symbols`` replaces the prior
        set wholesale; ``urgency_thresholds`` merges key by key.
        """
        changes: dict[str, Any] = {}

        if partial.get("active_symbols") is not None:
            changes["active_symbols"] = frozenset(s.strip() for s in partial["active_symbols"])

        if partial.get("urgency_thresholds") is not None:
            thresholds = partial["urgency_thresholds"]
            if isinstance(thresholds, UrgencyThresholds):
                changes["urgency_thresholds"] = thresholds
            else:
                changes["urgency_thresholds"] = replace(
                    self.urgency_thresholds,
                    **{k: float(v) for k, v in thresholds.items() if k in ("warning", "urgent")}
                )

        if "channel_config" in partial:
            changes["channel_config"] = partial["channel_config"]

        for name in ("enable_warning", "enable_urgent"):
            if partial.get(name) is not None:
                changes[name] = bool(partial[name])

        return replace(self, **changes)

    def to_dict(self, redact: bool = True) -> dict[str, Any]:
        return {
            "active_symbols": sorted(self.active_symbols),
            "urgency_thresholds": {
                "warning": self.urgency_thresholds.warning,
                "urgent": self.urgency_thresholds.urgent,
            },
            "channel_config": self.channel_config.to_dict(redact=redact) if self.channel_config else None,
            "enable_warning": self.enable_warning,
            "enable_urgent": self.enable_urgent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Preferences":
        """Rebuild preferences persisted with ``to_dict(redact=False)``."""
        channel = data.get("channel_config")
        return cls().merged({
            "active_symbols": data.get("active_symbols", []),
            "urgency_thresholds": data.get("urgency_thresholds"),
            "channel_config": parse_channel_config(channel) if channel else None,
            "enable_warning": data.get("enable_warning"),
            "enable_urgent": data.get("enable_urgent"),
        })

"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

from .channels import ChannelConfig


@dataclass(frozen=True)
class FieldIssue:
    """Represents a configuration validation problem."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_monitor_params(params: dict[str, Any]) -> list[FieldIssue]:
        """Validate control loop parameters."""
        issues = []

        if "interval_ms" in params:
            value = params["interval_ms"]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                issues.append(FieldIssue(
                    field="interval_ms",
                    message="Must be a positive integer",
                    value=value
                ))

        if "candle_limit" in params:
            value = params["candle_limit"]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                issues.append(FieldIssue(
                    field="candle_limit",
                    message="Must be a positive integer",
                    value=value
                ))

        if "max_workers" in params:
            value = params["max_workers"]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                issues.append(FieldIssue(
                    field="max_workers",
                    message="Must be a positive integer",
                    value=value
                ))

        for name in ("fetch_timeout_seconds", "dispatch_timeout_seconds", "base_atr_multiplier"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value <= 0:
                    issues.append(FieldIssue(
                        field=name,
                        message="Must be a positive number",
                        value=value
                    ))

        return issues

    @staticmethod
    def validate_notification_params(params: dict[str, Any]) -> list[FieldIssue]:
        """Validate urgency thresholds and delivery policy."""
        issues = []

        for name in ("warning_threshold", "urgent_threshold"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value < 0 or value > 100:
                    issues.append(FieldIssue(
                        field=name,
                        message="Must be a number between 0 and 100",
                        value=value
                    ))

        warning = params.get("warning_threshold")
        urgent = params.get("urgent_threshold")
        if _is_number(warning) and _is_number(urgent) and urgent < warning:
            issues.append(FieldIssue(
                field="urgent_threshold",
                message="Must be greater than or equal to warning_threshold",
                value=urgent
            ))

        for name in ("warning_cooldown_ms", "urgent_cooldown_ms", "max_retries"):
            if name in params:
                value = params[name]
                if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                    issues.append(FieldIssue(
                        field=name,
                        message="Must be a non-negative integer",
                        value=value
                    ))

        if "retry_delay_seconds" in params:
            value = params["retry_delay_seconds"]
            if not _is_number(value) or value < 0:
                issues.append(FieldIssue(
                    field="retry_delay_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        return issues

    @staticmethod
    def validate_preferences(params: dict[str, Any]) -> list[FieldIssue]:
        """Validate a (possibly partial) preferences payload."""
        issues = []

        if "active_symbols" in params:
            value = params["active_symbols"]
            if (not isinstance(value, (list, tuple, set, frozenset))
                    or not all(isinstance(s, str) and s.strip() for s in value)):
                issues.append(FieldIssue(
                    field="active_symbols",
                    message="Must be a list of non-empty symbol strings",
                    value=value
                ))

        for name in ("enable_warning", "enable_urgent"):
            if name in params and not isinstance(params[name], bool):
                issues.append(FieldIssue(
                    field=name,
                    message="Must be a boolean",
                    value=params[name]
                ))

        if "urgency_thresholds" in params:
            value = params["urgency_thresholds"]
            if not isinstance(value, dict):
                issues.append(FieldIssue(
                    field="urgency_thresholds",
                    message="Must be a mapping with warning/urgent keys",
                    value=value
                ))
            else:
                issues.extend(ConfigValidator.validate_notification_params({
                    f"{key}_threshold": val for key, val in value.items()
                    if key in ("warning", "urgent")
                }))

        if "channel_config" in params and params["channel_config"] is not None:
            if not isinstance(params["channel_config"], (dict, ChannelConfig)):
                issues.append(FieldIssue(
                    field="channel_config",
                    message="Must be a mapping",
                    value=params["channel_config"]
                ))

        return issues

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[FieldIssue]:
        """Validate complete configuration."""
        issues = []

        if "monitor" in config:
            issues.extend(ConfigValidator.validate_monitor_params(config["monitor"]))

        if "notifications" in config:
            issues.extend(ConfigValidator.validate_notification_params(config["notifications"]))

        if "preferences" in config:
            issues.extend(ConfigValidator.validate_preferences(config["preferences"]))

        return issues

"""
Command line entry point.

    sigmon validate-config [--config-dir DIR]
    sigmon test-channel [--message]
    sigmon serve --source pkg.module:CandleSourceClass --engine pkg.module:EngineClass

Telegram credentials are read from SIGMON_TELEGRAM_BOT_TOKEN and
SIGMON_TELEGRAM_CHAT_ID; without them notifications go to stdout.
"""

import argparse
import importlib
import os
import sys
from pathlib import Path
from typing import Any, Optional

import structlog

from .config.channels import parse_channel_config
from .config.loader import ConfigLoader
from .delivery.factory import create_notifier
from .errors import ValidationError
from .logging.config import configure_logging

logger = structlog.get_logger(__name__)


def channel_from_env() -> Optional[dict[str, Any]]:
    """Telegram channel mapping from the environment, or None."""
    token = os.environ.get("SIGMON_TELEGRAM_BOT_TOKEN")
    chat_id = os.environ.get("SIGMON_TELEGRAM_CHAT_ID")
    if not token or not chat_id:
        return None
    return {"kind": "telegram", "bot_token": token, "chat_id": chat_id}


def load_object(path: str) -> Any:
    """Instantiate ``package.module:ClassName`` with no arguments."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValidationError(f"Expected module:ClassName, got {path!r}", field="path", value=path)
    module = importlib.import_module(module_name)
    return getattr(module, attr)()


def cmd_validate_config(args: argparse.Namespace) -> int:
    loader = ConfigLoader.create(Path(args.config_dir) if args.config_dir else None)
    try:
        config = loader.load()
    except ValidationError as e:
        print(f"❌ Invalid configuration: {e}")
        return 1

    print("✅ Configuration is valid")
    print(f"   Interval: {config.monitor.interval_ms // 1000}s")
    print(f"   Active symbols: {', '.join(config.preferences.active_symbols)}")
    print(f"   Thresholds: warning {config.notifications.warning_threshold:g}, "
          f"urgent {config.notifications.urgent_threshold:g}")
    return 0


def cmd_test_channel(args: argparse.Namespace) -> int:
    notifier = create_notifier(parse_channel_config(channel_from_env()))
    ok = notifier.send_test_message() if args.message else notifier.health_check()
    print(f"{'✅' if ok else '❌'} {notifier.name} channel {'reachable' if ok else 'unreachable'}")
    return 0 if ok else 1


def cmd_serve(args: argparse.Namespace) -> int:
    from .api import create_app
    from .persistence.notification_store import NotificationStore
    from .system import SignalSystem

    loader = ConfigLoader.create(Path(args.config_dir) if args.config_dir else None)
    system = SignalSystem(
        candle_source=load_object(args.source),
        engine=load_object(args.engine),
        config=loader.load(),
        store=NotificationStore(args.db) if args.db else None,
    )

    if args.autostart:
        system.initialize(channel=channel_from_env())
        system.start()

    app = create_app(system)
    logger.info("Serving signal API", host=args.host, port=args.port)
    try:
        app.run(host=args.host, port=args.port, threaded=True, use_reloader=False)
    finally:
        system.shutdown()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sigmon", description="Signal monitoring and alerting")
    parser.add_argument("--log-level", default=os.environ.get("SIGMON_LOG_LEVEL", "INFO"))
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--config-dir", default=None, help="Directory holding settings.yaml")

    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate-config", help="Load and validate configuration")
    validate.set_defaults(func=cmd_validate_config)

    test = sub.add_parser("test-channel", help="Check the notification channel")
    test.add_argument("--message", action="store_true", help="Send a test message")
    test.set_defaults(func=cmd_test_channel)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--source", required=True, help="CandleSource as module:Class")
    serve.add_argument("--engine", required=True, help="AnalysisEngine as module:Class")
    serve.add_argument("--db", default=None, help="SQLite file for history and preferences")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--autostart", action="store_true",
                       help="Initialize with defaults and start monitoring immediately")
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level, format_json=args.json_logs)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

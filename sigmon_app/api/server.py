"""
Signal system REST API.

Flask app exposing the signal system to the surrounding application.

Endpoints:
    /api/signals/init         - GET initialized flag, POST one-time init
    /api/signals/monitor      - GET status, POST {action: start|stop}
    /api/signals/preferences  - GET current, POST partial update (merge)
    /api/signals/history      - GET notifications (?start=&end=, epoch ms or ISO8601)
    /api/signals/dismiss      - POST {id}
    /api/signals/channel      - POST {action: configure|test-connection|test-message, channel?}
    /api/signals/bot          - POST {command} -> {reply}
    /api/signals/stops        - GET open trailing stops

Usage:
    from sigmon_app.api import create_app

    app = create_app(system)
    app.run(host='0.0.0.0', port=8080)
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

import structlog
from flask import Flask, jsonify, request

from ..errors import (
    ClientError,
    NotFoundError,
    PersistenceError,
    StatePreconditionError,
    UpstreamUnavailableError,
    ValidationError,
)
from ..notifications.models import NotificationRecord
from ..utils.time import datetime_to_ms, format_ms

if TYPE_CHECKING:
    from ..system import SignalSystem

logger = structlog.get_logger(__name__)


def create_app(system: "SignalSystem") -> Flask:
    """
    Build the Flask app bound to a signal system.

    Args:
        system: SignalSystem instance every route operates on
    """
    app = Flask(__name__)
    _register_error_handlers(app)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @app.route('/api/signals/init', methods=['GET'])
    def get_init():
        return jsonify({'initialized': system.is_initialized})

    @app.route('/api/signals/init', methods=['POST'])
    def post_init():
        body = _json_body()
        status = system.initialize(
            symbols=body.get('symbols'),
            preferences=body.get('preferences'),
            monitor_config=body.get('monitor_config'),
            channel=body.get('channel'),
        )
        return jsonify({'initialized': True, **_status_view(status)}), 201

    @app.route('/api/signals/monitor', methods=['GET'])
    def get_monitor():
        return jsonify(_status_view(system.status()))

    @app.route('/api/signals/monitor', methods=['POST'])
    def post_monitor():
        action = _required(_json_body(), 'action')

        if action == 'start':
            status = system.start()
        elif action == 'stop':
            status = system.stop()
        else:
            raise ValidationError("action must be 'start' or 'stop'", field='action', value=action)

        return jsonify(_status_view(status))

    # =========================================================================
    # PREFERENCES AND HISTORY
    # =========================================================================

    @app.route('/api/signals/preferences', methods=['GET'])
    def get_preferences():
        return jsonify(system.get_preferences().to_dict())

    @app.route('/api/signals/preferences', methods=['POST'])
    def post_preferences():
        updated = system.update_preferences(_json_body())
        return jsonify(updated.to_dict())

    @app.route('/api/signals/history', methods=['GET'])
    def get_history():
        """
        Notification history.

        Query params:
            start: Inclusive lower bound (epoch ms or ISO8601)
            end: Exclusive upper bound (epoch ms or ISO8601)
        """
        start = _parse_time(request.args.get('start'), 'start')
        end = _parse_time(request.args.get('end'), 'end')
        records = system.get_history(start, end)
        return jsonify([_record_view(r) for r in records])

    @app.route('/api/signals/dismiss', methods=['POST'])
    def post_dismiss():
        record = system.dismiss(_required(_json_body(), 'id'))
        return jsonify(_record_view(record))

    @app.route('/api/signals/stops', methods=['GET'])
    def get_stops():
        return jsonify(system.stop_report())

    # =========================================================================
    # CHANNEL
    # =========================================================================

    @app.route('/api/signals/channel', methods=['POST'])
    def post_channel():
        body = _json_body()
        action = _required(body, 'action')
        channel = body.get('channel')

        if action == 'configure':
            if not channel:
                raise ValidationError("channel is required", field='channel')
            config = system.configure_channel(channel, verify=body.get('verify', True))
            return jsonify({'configured': True, 'channel': config.to_dict()})

        if action == 'test-connection':
            return jsonify(system.test_channel(send_message=False, channel=channel))

        if action == 'test-message':
            return jsonify(system.test_channel(send_message=True, channel=channel))

        raise ValidationError(
            "action must be one of: configure, test-connection, test-message",
            field='action',
            value=action
        )

    @app.route('/api/signals/bot', methods=['POST'])
    def post_bot():
        command = _required(_json_body(), 'command')
        return jsonify({'reply': system.handle_command(command)})

    return app


# =============================================================================
# HELPERS
# =============================================================================


def _register_error_handlers(app: Flask) -> None:
    def respond(error: Exception, status: int):
        body: dict[str, Any] = {'error': type(error).__name__, 'message': str(error)}
        field = getattr(error, 'field', None)
        if field:
            body['field'] = field
        return jsonify(body), status

    @app.errorhandler(ValidationError)
    def handle_validation(error):
        return respond(error, 400)

    @app.errorhandler(NotFoundError)
    def handle_not_found(error):
        return respond(error, 404)

    @app.errorhandler(ClientError)
    def handle_client(error):
        return respond(error, 400)

    @app.errorhandler(StatePreconditionError)
    def handle_state(error):
        return respond(error, 409)

    @app.errorhandler(UpstreamUnavailableError)
    def handle_upstream(error):
        logger.warning("Upstream failure in request", path=request.path, error=str(error))
        return respond(error, 502)

    @app.errorhandler(PersistenceError)
    def handle_persistence(error):
        logger.error("Persistence failure in request", path=request.path, error=str(error))
        return respond(error, 500)


def _json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object", field='body')
    return body


def _required(body: dict[str, Any], name: str) -> Any:
    value = body.get(name)
    if value is None or value == '':
        raise ValidationError(f"{name} is required", field=name)
    return value


def _parse_time(value: Optional[str], name: str) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return datetime_to_ms(datetime.fromisoformat(value))
    except ValueError:
        raise ValidationError(f"{name} must be epoch milliseconds or ISO8601",
                              field=name, value=value)


def _record_view(record: NotificationRecord) -> dict[str, Any]:
    view = record.to_dict()
    view['timestamp'] = format_ms(record.timestamp_ms)
    return view


def _status_view(status: dict[str, Any]) -> dict[str, Any]:
    return {
        'isRunning': status['is_running'],
        'config': status['config'],
        'lastTickAt': status['last_tick_at'],
        'perSymbolState': status['per_symbol_state'],
    }

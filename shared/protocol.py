"""Network protocol message definitions and serialization."""

import json
from typing import Optional
from shared.constants import MessageType, ErrorCode, ERROR_MESSAGES


def create_message(msg_type: MessageType, payload: dict = None, request_id=None) -> str:
    """Create a JSON message string."""
    msg = {
        "type": msg_type.value,
        "payload": payload or {},
    }
    if request_id is not None:
        msg["id"] = request_id
    return json.dumps(msg)


def parse_message(data: str) -> tuple[MessageType, dict]:
    """Parse a JSON message string into (type, payload).

    Raises ValueError (json.JSONDecodeError included) for anything that is not
    a well-formed message of a known type.
    """
    msg = json.loads(data)
    if not isinstance(msg, dict):
        raise ValueError("message must be a JSON object")
    payload = msg.get("payload") or {}
    if not isinstance(payload, dict):
        raise ValueError("payload must be a JSON object")
    if "type" not in msg:
        raise ValueError("message has no type")
    return MessageType(msg["type"]), payload


def request_id_of(data: str):
    """Best-effort extraction of the client's request id, for acks on bad frames."""
    try:
        msg = json.loads(data)
    except ValueError:
        return None
    return msg.get("id") if isinstance(msg, dict) else None


def create_ack(request_id=None, error: Optional[ErrorCode] = None, **extra) -> str:
    """Acknowledge a request: {ok: true, ...extra} or {ok: false, error, message}."""
    if error is None:
        payload = {"ok": True, **extra}
    else:
        payload = {"ok": False, "error": error.value, "message": ERROR_MESSAGES[error]}
    return create_message(MessageType.ACK, payload, request_id=request_id)
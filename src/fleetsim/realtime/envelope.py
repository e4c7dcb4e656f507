"""Wire envelope codec for the real-time channel.

Outbound and inbound messages share one JSON shape::

    {"type": "location_update", "data": {"vehicleId": "...", ...}, "timestamp": "..."}

``type`` is one of ``location_update``, ``sensor_data``, ``alert`` or
``fuel_alert``. The backend also emits flat events (``LocationUpdate``,
``SensorDataUpdate``, ``AlertUpdate``) that carry ``vehicleId`` at the top
level; :func:`decode_message` accepts both.
"""

from __future__ import annotations

import json
import logging
import secrets
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from fleetsim import _constants as C
from fleetsim.exceptions import EnvelopeError
from fleetsim.models._base import parse_timestamp, utcnow
from fleetsim.models.alert import AlertKind, AlertRecord
from fleetsim.models.realtime import (
    AlertPayload,
    LocationPayload,
    RealtimeUpdate,
    SensorPayload,
)

_logger = logging.getLogger(__name__)

LOCATION_UPDATE = "location_update"
SENSOR_DATA = "sensor_data"
ALERT = "alert"
FUEL_ALERT = "fuel_alert"

_BACKEND_EVENTS: dict[str, str] = {
    "LocationUpdate": LOCATION_UPDATE,
    "SensorDataUpdate": SENSOR_DATA,
    "AlertUpdate": ALERT,
}


def _payload_body(payload: LocationPayload | SensorPayload) -> dict[str, Any]:
    body = payload.to_wire()
    body.pop("payloadType", None)
    return body


def _alert_body(alert: AlertRecord) -> dict[str, Any]:
    body = alert.to_wire()
    body.pop("vehicleId", None)
    # Consumers of the original channel read the alert kind from "type".
    body["type"] = body["kind"]
    return body


def message_type(update: RealtimeUpdate) -> str:
    if update.is_location:
        return LOCATION_UPDATE
    if update.is_sensor:
        return SENSOR_DATA
    if update.is_fuel_alert:
        return FUEL_ALERT
    return ALERT


def encode_update(update: RealtimeUpdate, now: datetime | None = None) -> dict[str, Any]:
    """Encode *update* as a wire envelope dict.

    The envelope ``timestamp`` is *now* when given, otherwise the update's
    own timestamp.
    """
    payload = update.payload
    data: dict[str, Any] = {"vehicleId": update.vehicle_id}
    if isinstance(payload, LocationPayload):
        data["location"] = _payload_body(payload)
    elif isinstance(payload, SensorPayload):
        data["sensorData"] = _payload_body(payload)
    elif isinstance(payload, AlertPayload):
        body = _alert_body(payload.alert)
        if update.is_fuel_alert:
            data.update(body)
        else:
            data["alert"] = body
    stamp = now if now is not None else update.timestamp
    return {
        "type": message_type(update),
        "data": data,
        "timestamp": stamp.isoformat(),
    }


def dumps_update(update: RealtimeUpdate, now: datetime | None = None) -> str:
    return json.dumps(encode_update(update, now), separators=(",", ":"))


def join_message(fleet_id: str) -> str:
    """Handshake sent right after the transport connects."""
    return json.dumps({"type": C.JOIN_FLEET_GROUP, "fleetId": fleet_id}, separators=(",", ":"))


# ------------------------------------------------------------------
# Decoding
# ------------------------------------------------------------------


def _as_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise EnvelopeError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _decode_alert(vehicle_id: str, body: Mapping[str, Any], timestamp: datetime, *, fuel: bool) -> AlertRecord:
    kind = AlertKind.FUEL if fuel else body.get("kind") or body.get("type")
    if kind is None:
        raise EnvelopeError("Alert without kind/type")
    alert_ts = body.get("timestamp", timestamp)
    return AlertRecord.model_validate(
        {
            "id": body.get("id") or f"{kind}_{vehicle_id}_{secrets.token_hex(6)}",
            "vehicle_id": vehicle_id,
            "kind": kind,
            "severity": body.get("severity", "medium"),
            "title": body.get("title", ""),
            "message": body.get("message", ""),
            "timestamp": alert_ts,
            "is_predictive": body.get("isPredictive", body.get("is_predictive", False)),
        }
    )


def decode_message(raw: str | bytes | Mapping[str, Any]) -> RealtimeUpdate | None:
    """Decode one inbound message into a :class:`RealtimeUpdate`.

    Returns ``None`` for well-formed messages of a type this channel does
    not carry (handshake acknowledgements, control messages).

    Raises
    ------
    EnvelopeError
        The message is not JSON, is not an object, or misses the fields its
        type requires.
    """
    if isinstance(raw, (str, bytes)):
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise EnvelopeError(f"Message is not valid JSON: {exc}") from exc
    else:
        message = raw
    message = _as_mapping(message, "message")

    raw_type = message.get("type")
    if not isinstance(raw_type, str):
        raise EnvelopeError("Message has no string 'type'")

    if raw_type in _BACKEND_EVENTS:
        kind = _BACKEND_EVENTS[raw_type]
        data = message
    elif raw_type in (LOCATION_UPDATE, SENSOR_DATA, ALERT, FUEL_ALERT):
        kind = raw_type
        data = _as_mapping(message.get("data"), "data")
    else:
        _logger.debug("Ignoring message type=%s", raw_type)
        return None

    vehicle_id = data.get("vehicleId")
    if not isinstance(vehicle_id, str) or not vehicle_id:
        raise EnvelopeError(f"{raw_type} message without vehicleId")

    try:
        timestamp = parse_timestamp(message["timestamp"]) if "timestamp" in message else utcnow()
        if kind == LOCATION_UPDATE:
            body = _as_mapping(data.get("location"), "location")
            payload: Any = LocationPayload.model_validate(body)
        elif kind == SENSOR_DATA:
            body = _as_mapping(data.get("sensorData"), "sensorData")
            payload = SensorPayload.model_validate(body)
        elif kind == FUEL_ALERT:
            payload = AlertPayload(alert=_decode_alert(vehicle_id, data, timestamp, fuel=True))
        else:
            body = _as_mapping(data.get("alert"), "alert")
            payload = AlertPayload(alert=_decode_alert(vehicle_id, body, timestamp, fuel=False))
        return RealtimeUpdate(vehicle_id=vehicle_id, payload=payload, timestamp=timestamp)
    except (ValidationError, ValueError, OverflowError, TypeError) as exc:
        raise EnvelopeError(f"Invalid {raw_type} message: {exc}") from exc

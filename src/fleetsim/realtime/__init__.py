"""Real-time distribution: hub, subscriptions, wire envelope and transports."""

from fleetsim.realtime.envelope import decode_message, dumps_update, encode_update, join_message
from fleetsim.realtime.hub import ConnectionState, DistributionHub, HubStatus
from fleetsim.realtime.mqtt import MqttTransport
from fleetsim.realtime.subscription import Subscription, SubscriptionFilter
from fleetsim.realtime.transport import Transport, WebSocketTransport

__all__ = [
    "ConnectionState",
    "DistributionHub",
    "HubStatus",
    "MqttTransport",
    "Subscription",
    "SubscriptionFilter",
    "Transport",
    "WebSocketTransport",
    "decode_message",
    "dumps_update",
    "encode_update",
    "join_message",
]

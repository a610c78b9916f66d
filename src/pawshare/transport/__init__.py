from pawshare.transport.http import HttpClient
from pawshare.transport.realtime import EventChannel, RealtimeChannel, Subscription
from pawshare.transport.socketio import SocketIOManager

__all__ = ["EventChannel", "HttpClient", "RealtimeChannel", "SocketIOManager", "Subscription"]

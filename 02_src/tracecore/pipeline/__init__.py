"""Event pipeline module."""

from .pipeline import EventPipeline, IEventPipeline, PipelineStats
from .shutdown import BeaconSender, IShutdownSender, RequestSender, select_shutdown_sender
from .transport import HttpTransport, ITransport, SupportsBeacon, TransportError

__all__ = [
    "EventPipeline",
    "IEventPipeline",
    "PipelineStats",
    "ITransport",
    "HttpTransport",
    "SupportsBeacon",
    "TransportError",
    "IShutdownSender",
    "BeaconSender",
    "RequestSender",
    "select_shutdown_sender",
]

"""Schnittstellen zu Discovery (SMP/SML) und Access Point."""

from .access_point import (
    AccessPointGateway,
    GatewayError,
    LoopbackTransport,
    MessageStatus,
    SendResult,
    TransmissionGateway,
    Transport,
    TransportResult,
)
from .discovery import (
    DiscoveryService,
    Endpoint,
    LookupResult,
    ServiceMetadata,
    StaticDiscoveryService,
    participant_hash,
    sml_hostname,
)

__all__ = [
    "AccessPointGateway",
    "DiscoveryService",
    "Endpoint",
    "GatewayError",
    "LookupResult",
    "LoopbackTransport",
    "MessageStatus",
    "SendResult",
    "ServiceMetadata",
    "StaticDiscoveryService",
    "TransmissionGateway",
    "Transport",
    "TransportResult",
    "participant_hash",
    "sml_hostname",
]

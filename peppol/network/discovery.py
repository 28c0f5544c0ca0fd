"""Discovery-Schnittstelle (SMP/SML) und ein statischer In-Memory-Katalog.

Die Auflösung über DNS und HTTP liegt außerhalb dieses Pakets. Hier stehen der
Vertrag, die SML-Hostnamen-Ableitung und ``StaticDiscoveryService`` als
deterministischer Kollaborator für Tests, CLI und lokale Läufe.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from backend.core.config import Settings, settings as default_settings
from backend.core.logging import get_logger

from ..participants import BILLING_PROCESS, DocumentTypeId, Participant, ProcessId

logger = get_logger(__name__)

SML_ACTOR_SCHEME = "iso6523-actorid-upis"


@dataclass(frozen=True)
class Endpoint:
    transport_profile: str
    url: str
    certificate: Optional[str] = None
    activation_date: Optional[str] = None
    expiration_date: Optional[str] = None


@dataclass(frozen=True)
class ServiceMetadata:
    document_type: DocumentTypeId
    processes: Tuple[ProcessId, ...] = (BILLING_PROCESS,)
    endpoints: Tuple[Endpoint, ...] = ()

    def supports(self, document_type: DocumentTypeId) -> bool:
        return (
            self.document_type.scheme == document_type.scheme
            and self.document_type.identifier == document_type.identifier
        )


@dataclass
class LookupResult:
    found: bool
    participant: Optional[Participant] = None
    document_types: List[ServiceMetadata] = field(default_factory=list)
    error: Optional[str] = None

    def metadata_for(self, document_type: DocumentTypeId) -> Optional[ServiceMetadata]:
        for metadata in self.document_types:
            if metadata.supports(document_type):
                return metadata
        return None


@runtime_checkable
class DiscoveryService(Protocol):
    """Vertrag für die Teilnehmer-Auflösung.

    Implementierungen setzen ihre eigenen Timeouts und liefern bei Netzfehlern
    ``LookupResult(found=False, error=...)`` statt zu werfen.
    """

    def lookup(self, participant: Participant) -> LookupResult:
        ...

    def can_receive(self, participant: Participant, document_type: DocumentTypeId) -> bool:
        ...

    def endpoint_url(
        self,
        participant: Participant,
        document_type: DocumentTypeId,
        preferred_transport: Optional[str] = None,
    ) -> Optional[str]:
        ...


def participant_key(participant: Participant) -> str:
    return f"{participant.scheme}::{participant.identifier}".lower()


def participant_hash(participant: Participant) -> str:
    """MD5 über ``scheme::identifier`` (kleingeschrieben) als DNS-Label-Präfix."""

    return hashlib.md5(participant_key(participant).encode("utf-8")).hexdigest().lower()


def sml_hostname(participant: Participant, sml_domain: Optional[str] = None) -> str:
    domain = sml_domain or default_settings.PEPPOL_SML_DOMAIN
    return f"B-{participant_hash(participant)}.{SML_ACTOR_SCHEME}.{domain}"


def select_endpoint(
    metadata: ServiceMetadata,
    preferred_transport: Optional[str],
    default_transport: str,
) -> Optional[Endpoint]:
    if not metadata.endpoints:
        return None
    profile = preferred_transport or default_transport
    for endpoint in metadata.endpoints:
        if endpoint.transport_profile == profile:
            return endpoint
    return metadata.endpoints[0]


class StaticDiscoveryService:
    """Registrierte Teilnehmer-Fähigkeiten ohne Netzwerkzugriff."""

    name = "static"

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or default_settings
        self._capabilities: Dict[str, List[ServiceMetadata]] = {}
        self._participants: Dict[str, Participant] = {}

    def register(
        self,
        participant: Participant,
        document_type: DocumentTypeId,
        endpoint_url: str,
        *,
        transport_profile: Optional[str] = None,
        processes: Tuple[ProcessId, ...] = (BILLING_PROCESS,),
    ) -> ServiceMetadata:
        profile = transport_profile or self._settings.PEPPOL_DEFAULT_TRANSPORT_PROFILE
        key = participant_key(participant)
        entries = self._capabilities.setdefault(key, [])
        self._participants[key] = participant
        endpoint = Endpoint(transport_profile=profile, url=endpoint_url)
        for index, existing in enumerate(entries):
            if existing.supports(document_type):
                updated = ServiceMetadata(
                    document_type=existing.document_type,
                    processes=existing.processes,
                    endpoints=existing.endpoints + (endpoint,),
                )
                entries[index] = updated
                return updated
        metadata = ServiceMetadata(document_type=document_type, processes=processes, endpoints=(endpoint,))
        entries.append(metadata)
        return metadata

    def hostname(self, participant: Participant) -> str:
        return sml_hostname(participant, self._settings.PEPPOL_SML_DOMAIN)

    def lookup(self, participant: Participant) -> LookupResult:
        logger.debug(
            "Participant lookup",
            extra={"participant": str(participant), "sml_host": self.hostname(participant)},
        )
        key = participant_key(participant)
        entries = self._capabilities.get(key)
        if not entries:
            return LookupResult(found=False, error="Participant not found in Peppol network")
        return LookupResult(found=True, participant=self._participants[key], document_types=list(entries))

    def can_receive(self, participant: Participant, document_type: DocumentTypeId) -> bool:
        result = self.lookup(participant)
        return result.found and result.metadata_for(document_type) is not None

    def endpoint_url(
        self,
        participant: Participant,
        document_type: DocumentTypeId,
        preferred_transport: Optional[str] = None,
    ) -> Optional[str]:
        result = self.lookup(participant)
        if not result.found:
            return None
        metadata = result.metadata_for(document_type)
        if metadata is None:
            return None
        endpoint = select_endpoint(
            metadata, preferred_transport, self._settings.PEPPOL_DEFAULT_TRANSPORT_PROFILE
        )
        return endpoint.url if endpoint is not None else None

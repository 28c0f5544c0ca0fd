"""Übertragung über einen Peppol Access Point.

``AccessPointGateway`` prüft Sender/Empfänger, baut den Versand-Payload und
übergibt ihn einem ``Transport``. Der echte HTTP-Client eines Providers ist
ein Transport unter mehreren. ``LoopbackTransport`` hält Nachrichten im
Speicher und erlaubt das Setzen des Zustellstatus.
"""

from __future__ import annotations

import base64
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from backend.core.config import Settings, settings as default_settings
from backend.core.logging import get_logger

from ..participants import DocumentTypeId, Participant, ProcessId
from .discovery import DiscoveryService

logger = get_logger(__name__)

MESSAGE_STATUSES = ("pending", "sent", "delivered", "rejected", "failed")
CONTENT_TYPE = "application/xml"

_BASE36 = string.digits + string.ascii_lowercase


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def sender_participant(settings: Settings) -> Participant:
    return Participant(
        scheme=settings.PEPPOL_SENDER_SCHEME,
        identifier=settings.PEPPOL_SENDER_ID,
        name=settings.PEPPOL_SENDER_NAME or None,
        country_code=settings.PEPPOL_SENDER_COUNTRY or None,
    )


@dataclass(frozen=True)
class GatewayError:
    code: str
    message: str


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[GatewayError] = None
    timestamp: Optional[datetime] = None


@dataclass
class MessageStatus:
    message_id: str
    status: str
    timestamp: datetime
    details: Optional[str] = None
    receipt_id: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None


@runtime_checkable
class TransmissionGateway(Protocol):
    """Vertrag für Versand und Statusabfrage.

    ``send`` meldet Fehler über ``SendResult.success``; ``get_status`` liefert
    ``None``, wenn der Status nicht ermittelt werden konnte.
    """

    def send(
        self,
        sender: Participant,
        receiver: Participant,
        document_type: DocumentTypeId,
        process: ProcessId,
        xml: str,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> SendResult:
        ...

    def get_status(self, message_id: str) -> Optional[MessageStatus]:
        ...


@dataclass
class TransportResult:
    ok: bool
    error: Optional[str] = None


class Transport(Protocol):
    name: str

    def deliver(self, payload: Dict[str, object], *, timeout: float) -> TransportResult:
        ...

    def status(self, message_id: str) -> Optional[MessageStatus]:
        ...


@dataclass
class _StoredMessage:
    payload: Dict[str, object]
    status: MessageStatus


class LoopbackTransport:
    """Speichert Payloads lokal; Zustellstatus wird per ``set_status`` gesteuert."""

    name = "loopback"

    def __init__(self, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or _default_clock
        self._messages: Dict[str, _StoredMessage] = {}

    @property
    def message_ids(self) -> List[str]:
        return list(self._messages)

    def payload(self, message_id: str) -> Optional[Dict[str, object]]:
        stored = self._messages.get(message_id)
        return stored.payload if stored is not None else None

    def deliver(self, payload: Dict[str, object], *, timeout: float) -> TransportResult:
        message_id = str(payload["messageId"])
        if message_id in self._messages:
            return TransportResult(ok=False, error=f"duplicate message id {message_id}")
        status = MessageStatus(message_id=message_id, status="pending", timestamp=self._clock())
        self._messages[message_id] = _StoredMessage(payload=payload, status=status)
        return TransportResult(ok=True)

    def set_status(
        self,
        message_id: str,
        status: str,
        *,
        details: Optional[str] = None,
        receipt_id: Optional[str] = None,
    ) -> MessageStatus:
        if status not in MESSAGE_STATUSES:
            raise ValueError(f"unknown message status: {status}")
        stored = self._messages.get(message_id)
        if stored is None:
            raise KeyError(message_id)
        stored.status = MessageStatus(
            message_id=message_id,
            status=status,
            timestamp=self._clock(),
            details=details,
            receipt_id=receipt_id,
        )
        return stored.status

    def status(self, message_id: str) -> Optional[MessageStatus]:
        stored = self._messages.get(message_id)
        return stored.status if stored is not None else None


class AccessPointGateway:
    name = "access-point"

    def __init__(
        self,
        transport: Transport,
        *,
        discovery: Optional[DiscoveryService] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.transport = transport
        self.discovery = discovery
        self._settings = settings or default_settings
        self._clock = clock or _default_clock

    def _message_id(self) -> str:
        millis = int(self._clock().timestamp() * 1000)
        random_part = to_base36(secrets.randbelow(36 ** 8)).rjust(8, "0")
        return f"{self._settings.PEPPOL_MESSAGE_ID_PREFIX}-{to_base36(millis)}-{random_part}"

    @staticmethod
    def build_payload(
        message_id: str,
        sender: Participant,
        receiver: Participant,
        document_type: DocumentTypeId,
        process: ProcessId,
        xml: str,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, object]:
        return {
            "messageId": message_id,
            "sender": {"scheme": sender.scheme, "identifier": sender.identifier},
            "receiver": {"scheme": receiver.scheme, "identifier": receiver.identifier},
            "documentType": {"scheme": document_type.scheme, "identifier": document_type.identifier},
            "process": {"scheme": process.scheme, "identifier": process.identifier},
            "content": base64.b64encode(xml.encode("utf-8")).decode("ascii"),
            "contentType": CONTENT_TYPE,
            "metadata": dict(metadata or {}),
        }

    def send(
        self,
        sender: Participant,
        receiver: Participant,
        document_type: DocumentTypeId,
        process: ProcessId,
        xml: str,
        metadata: Optional[Mapping[str, str]] = None,
    ) -> SendResult:
        logger.info(
            "Sending document",
            extra={"receiver": str(receiver), "transport": self.transport.name},
        )
        if not sender.is_valid:
            return SendResult(
                success=False,
                error=GatewayError("INVALID_SENDER", "Invalid sender participant identifier"),
            )
        if not receiver.is_valid:
            return SendResult(
                success=False,
                error=GatewayError("INVALID_RECEIVER", "Invalid receiver participant identifier"),
            )

        if self.discovery is not None and not self.discovery.can_receive(receiver, document_type):
            # Versand trotzdem: der Empfänger kann das Dokument ggf. dennoch annehmen
            logger.warning(
                "Receiver not registered for document type",
                extra={"receiver": str(receiver), "document_type": document_type.name},
            )

        message_id = self._message_id()
        try:
            payload = self.build_payload(message_id, sender, receiver, document_type, process, xml, metadata)
            result = self.transport.deliver(payload, timeout=self._settings.ap_timeout_seconds)
        except Exception as exc:
            logger.exception(
                "Access point send failed",
                extra={"message_id": message_id, "transport": self.transport.name},
            )
            return SendResult(success=False, error=GatewayError("SEND_FAILED", str(exc) or type(exc).__name__))

        if not result.ok:
            logger.error(
                "Access point rejected message",
                extra={"message_id": message_id, "error": result.error},
            )
            return SendResult(
                success=False,
                error=GatewayError("SEND_FAILED", result.error or "Transport rejected message"),
            )

        logger.info("Document sent", extra={"message_id": message_id})
        return SendResult(success=True, message_id=message_id, timestamp=self._clock())

    def get_status(self, message_id: str) -> Optional[MessageStatus]:
        logger.debug("Fetching message status", extra={"message_id": message_id})
        try:
            return self.transport.status(message_id)
        except Exception:
            logger.exception("Message status lookup failed", extra={"message_id": message_id})
            return None

    def sender_participant(self) -> Participant:
        return sender_participant(self._settings)

    def validate_connection(self) -> bool:
        if not self._settings.PEPPOL_AP_URL or not self._settings.PEPPOL_AP_API_KEY:
            logger.warning("Access point not configured")
            return False
        return True

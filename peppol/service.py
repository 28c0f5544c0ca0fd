"""Fassade für den Peppol-Versand: Anlegen, Prüfen, Rendern, Senden, Nachverfolgen."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from backend.core.config import Settings, settings as default_settings
from backend.core.logging import get_logger

from .dto import Document
from .lifecycle import DocumentLifecycleManager, DocumentStatus, PeppolDocument, StatusChangeEvent
from .network import (
    AccessPointGateway,
    DiscoveryService,
    LookupResult,
    LoopbackTransport,
    StaticDiscoveryService,
    TransmissionGateway,
)
from .network.access_point import sender_participant
from .participants import (
    CREDIT_NOTE_DOCUMENT_TYPE,
    INVOICE_DOCUMENT_TYPE,
    Participant,
    format_participant,
    parse_participant,
)
from .rules import ValidationResult, evaluate
from .ubl import render_document
from .validation import validate
from .xrechnung import base_rule_set, extend, validate_overlay


@dataclass
class SendDocumentResult:
    success: bool
    document: Optional[PeppolDocument] = None
    message_id: Optional[str] = None
    error: Optional[str] = None
    validation_result: Optional[ValidationResult] = None


@dataclass
class XRechnungValidation:
    peppol: ValidationResult
    xrechnung: ValidationResult

    @property
    def valid(self) -> bool:
        return self.peppol.valid and self.xrechnung.valid


class PeppolService:
    logger = get_logger(__name__)

    def __init__(
        self,
        *,
        manager: Optional[DocumentLifecycleManager] = None,
        discovery: Optional[DiscoveryService] = None,
        gateway: Optional[TransmissionGateway] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.discovery = discovery or StaticDiscoveryService(self.settings)
        self.gateway = gateway or AccessPointGateway(
            LoopbackTransport(clock=clock), discovery=self.discovery, settings=self.settings, clock=clock
        )
        self.manager = manager or DocumentLifecycleManager(gateway=self.gateway, clock=clock)

    def create_and_send(
        self,
        document: Document,
        sender: Participant,
        receiver: Participant,
        routing_id: Optional[str] = None,
    ) -> SendDocumentResult:
        """Kompletter Versandlauf; Fehler werden im Ergebnis gemeldet, nicht geworfen."""

        self.logger.info(
            "Create and send",
            extra={
                "document_number": document.id,
                "document_kind": document.document_kind,
                "receiver": str(receiver),
            },
        )
        try:
            if routing_id:
                document = extend(document, routing_id)

            entry = self.manager.create_document(document.document_kind, document, sender, receiver)
            outcome = self.manager.validate_document(entry.document_id)
            if not outcome.valid:
                return SendDocumentResult(
                    success=False,
                    document=outcome.document,
                    validation_result=outcome.result,
                    error=f"Validation failed with {len(outcome.result.errors)} errors",
                )

            xml = render_document(document)
            self.manager.set_document_xml(entry.document_id, xml)

            submission = self.manager.submit_document(entry.document_id)
            return SendDocumentResult(
                success=submission.success,
                document=submission.document,
                message_id=submission.message_id,
                error=submission.error,
                validation_result=outcome.result,
            )
        except Exception as exc:
            self.logger.exception(
                "Create and send failed", extra={"document_number": document.id}
            )
            return SendDocumentResult(success=False, error=str(exc) or type(exc).__name__)

    def generate_xml(self, document: Document, routing_id: Optional[str] = None) -> str:
        if routing_id:
            document = extend(document, routing_id)
        return render_document(document)

    def validate(self, document: Document) -> ValidationResult:
        return validate(document)

    def validate_xrechnung(self, document: Document) -> XRechnungValidation:
        """Basisregeln und BR-DE-Regeln getrennt ausgewiesen."""

        base = evaluate(document, base_rule_set(document.document_kind))
        return XRechnungValidation(peppol=base, xrechnung=validate_overlay(document))

    def lookup_participant(self, participant: Participant) -> LookupResult:
        return self.discovery.lookup(participant)

    def can_receive_invoice(self, participant: Participant) -> bool:
        return self.discovery.can_receive(participant, INVOICE_DOCUMENT_TYPE)

    def can_receive_credit_note(self, participant: Participant) -> bool:
        return self.discovery.can_receive(participant, CREDIT_NOTE_DOCUMENT_TYPE)

    def get_document(self, document_id: str) -> Optional[PeppolDocument]:
        return self.manager.get_document(document_id)

    def list_documents(self) -> List[PeppolDocument]:
        return self.manager.list_documents()

    def documents_by_status(self, status: DocumentStatus) -> List[PeppolDocument]:
        return self.manager.documents_by_status(status)

    def refresh_document_status(self, document_id: str) -> Optional[PeppolDocument]:
        return self.manager.refresh_document_status(document_id)

    def statistics(self) -> dict:
        return self.manager.statistics()

    def on_document_status_change(self, callback: Callable[[StatusChangeEvent], None]) -> None:
        self.manager.on_status_change(callback)

    def validate_connection(self) -> bool:
        if isinstance(self.gateway, AccessPointGateway):
            return self.gateway.validate_connection()
        return True

    def own_participant(self) -> Participant:
        return sender_participant(self.settings)

    @staticmethod
    def parse_participant_id(value: str) -> Optional[Participant]:
        return parse_participant(value)

    @staticmethod
    def format_participant_id(participant: Participant) -> str:
        return format_participant(participant)

"""Lebenszyklus von Peppol-Dokumenten: Anlage, Validierung, Versand, Abgleich.

Jeder Zugriff auf einen Eintrag läuft unter dessen Key-Lock. Validator- und
Gateway-Aufrufe sowie Subscriber laufen ohne gehaltenen Lock, damit ein
langsamer Kollaborator keine anderen Dokumente blockiert.
"""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Dict, List, Optional, Set, Tuple

from backend.core.config import settings
from backend.core.logging import get_logger

from ..dto import DOCUMENT_KINDS, Document, ensure_kind
from ..network.access_point import GatewayError, MessageStatus, SendResult, TransmissionGateway, to_base36
from ..participants import BILLING_PROCESS, Participant, document_type_for
from ..rules import Severity, ValidationResult
from ..validation import validate
from .registry import DocumentRegistry
from .status import (
    SUBMITTABLE_STATUSES,
    DeliveryReceipt,
    DocumentStatus,
    PeppolDocument,
    StatusChangeEvent,
    StatusHistoryEntry,
    is_valid_transition,
)

logger = get_logger(__name__)

StatusCallback = Callable[[StatusChangeEvent], None]
Validator = Callable[[Document], ValidationResult]

# pending und sent sind beide "unterwegs"; ein eigener Zustand dafür existiert nicht
EXTERNAL_STATUS_MAP: Dict[str, DocumentStatus] = {
    "pending": DocumentStatus.SUBMITTED,
    "sent": DocumentStatus.SUBMITTED,
    "delivered": DocumentStatus.DELIVERED,
    "rejected": DocumentStatus.REJECTED,
    "failed": DocumentStatus.FAILED,
}

ACCESS_POINT_ACTOR = "access-point"


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


def _default_id_factory(clock: Callable[[], datetime]) -> str:
    millis = int(clock().timestamp() * 1000)
    random_part = to_base36(secrets.randbelow(36 ** 8)).rjust(8, "0")
    return f"{settings.PEPPOL_DOCUMENT_ID_PREFIX}-{to_base36(millis)}-{random_part}"


@dataclass
class ValidationOutcome:
    valid: bool
    result: Optional[ValidationResult]
    document: Optional[PeppolDocument]
    error: Optional[str] = None


@dataclass
class SubmissionOutcome:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    document: Optional[PeppolDocument] = None


class DocumentLifecycleManager:
    """Verwaltet Peppol-Dokumente entlang der Statusmaschine.

    Unzulässige Operationen (unbekannte ID, verbotener Übergang, Versand ohne
    XML) werden über Rückgabewerte gemeldet. Fehler der Kollaboratoren führen
    zu ``FAILED`` mit Fehlermeldung.
    """

    def __init__(
        self,
        *,
        validator: Optional[Validator] = None,
        gateway: Optional[TransmissionGateway] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        registry: Optional[DocumentRegistry] = None,
    ) -> None:
        self._clock = clock or _default_clock
        self._validator = validator or partial(validate, clock=self._clock)
        self.gateway = gateway
        self._id_factory = id_factory or partial(_default_id_factory, self._clock)
        self._registry = registry or DocumentRegistry()
        self._subscribers: List[StatusCallback] = []
        self._subscribers_lock = threading.Lock()
        self._inflight_lock = threading.Lock()
        self._submitting: Set[str] = set()

    # ------------------------------------------------------------------ registry

    def create_document(
        self,
        kind: str,
        document: Document,
        sender: Participant,
        receiver: Participant,
    ) -> PeppolDocument:
        ensure_kind(kind)
        if document.document_kind != kind:
            raise ValueError(f"document kind mismatch: {document.document_kind} != {kind}")

        now = self._clock()
        entry = PeppolDocument(
            document_id=self._id_factory(),
            document_kind=kind,
            document=document,
            sender=sender,
            receiver=receiver,
            document_type=document_type_for(kind),
            process=BILLING_PROCESS,
            status=DocumentStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        entry.record(DocumentStatus.DRAFT, now, "Document created")
        self._registry.add(entry)
        logger.info(
            "Document created",
            extra={"document_id": entry.document_id, "document_kind": kind, "status": entry.status.value},
        )
        return entry

    def get_document(self, document_id: str) -> Optional[PeppolDocument]:
        return self._registry.get(document_id)

    def list_documents(self) -> List[PeppolDocument]:
        return self._registry.values()

    def documents_by_status(self, status: DocumentStatus) -> List[PeppolDocument]:
        return [entry for entry in self._registry.values() if entry.status == status]

    def get_status_history(self, document_id: str) -> List[StatusHistoryEntry]:
        """Kopie der Historie; unbekannte IDs liefern eine leere Liste."""

        with self._registry.locked(document_id) as entry:
            if entry is None:
                return []
            return list(entry.status_history)

    def delete_document(self, document_id: str) -> bool:
        removed = self._registry.remove(document_id)
        if removed:
            logger.info("Document deleted", extra={"document_id": document_id})
        return removed

    def set_document_xml(self, document_id: str, xml: str) -> bool:
        with self._registry.locked(document_id) as entry:
            if entry is None:
                logger.warning("Cannot set XML for unknown document", extra={"document_id": document_id})
                return False
            entry.xml = xml
            entry.updated_at = self._clock()
            return True

    # --------------------------------------------------------------- transitions

    def _transition_locked(
        self,
        entry: PeppolDocument,
        target: DocumentStatus,
        message: Optional[str],
        actor: Optional[str],
    ) -> Optional[StatusChangeEvent]:
        previous = entry.status
        if not is_valid_transition(previous, target):
            logger.warning(
                "Invalid status transition",
                extra={
                    "document_id": entry.document_id,
                    "from_status": previous.value,
                    "to_status": target.value,
                },
            )
            return None

        history_entry = entry.record(target, self._clock(), message, actor)
        logger.info(
            "Document status changed",
            extra={
                "document_id": entry.document_id,
                "from_status": previous.value,
                "to_status": target.value,
            },
        )
        return StatusChangeEvent(
            document_id=entry.document_id,
            previous_status=previous,
            new_status=target,
            timestamp=history_entry.timestamp,
            message=message,
            actor=actor,
        )

    def transition_status(
        self,
        document_id: str,
        target: DocumentStatus,
        message: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> bool:
        """Führt einen Übergang aus; ``False`` bei unbekannter ID oder unzulässigem Ziel."""

        with self._registry.locked(document_id) as entry:
            if entry is None:
                logger.warning("Transition for unknown document", extra={"document_id": document_id})
                return False
            event = self._transition_locked(entry, target, message, actor)
        if event is None:
            return False
        self._notify(event)
        return True

    def accept_document(self, document_id: str, message: Optional[str] = None) -> bool:
        return self.transition_status(
            document_id, DocumentStatus.ACCEPTED, message or "Document accepted by recipient"
        )

    def reject_document(self, document_id: str, reason: str) -> bool:
        return self.transition_status(
            document_id, DocumentStatus.REJECTED, f"Document rejected: {reason}"
        )

    # --------------------------------------------------------------- subscribers

    def on_status_change(self, callback: StatusCallback) -> None:
        with self._subscribers_lock:
            self._subscribers.append(callback)

    def off_status_change(self, callback: StatusCallback) -> None:
        with self._subscribers_lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _notify(self, event: StatusChangeEvent) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Status change subscriber failed",
                    extra={"document_id": event.document_id, "to_status": event.new_status.value},
                )

    # ---------------------------------------------------------------- validation

    def validate_document(self, document_id: str) -> ValidationOutcome:
        entry = self._registry.get(document_id)
        if entry is None:
            return ValidationOutcome(
                valid=False, result=None, document=None, error=f"Document {document_id} not found"
            )

        result = self._validator(entry.document)

        event = None
        with self._registry.locked(document_id) as entry:
            if entry is None:
                return ValidationOutcome(
                    valid=False, result=result, document=None, error=f"Document {document_id} not found"
                )
            if result.valid:
                entry.validation_errors = None
                event = self._transition_locked(
                    entry, DocumentStatus.VALIDATED, "Document validated successfully", None
                )
            else:
                entry.validation_errors = list(result.errors)
                entry.updated_at = self._clock()
                logger.info(
                    "Document validation failed",
                    extra={"document_id": document_id, "error_codes": result.codes(Severity.ERROR)},
                )
        if event is not None:
            self._notify(event)
        return ValidationOutcome(valid=result.valid, result=result, document=self._registry.get(document_id))

    # ---------------------------------------------------------------- submission

    def submit_document(self, document_id: str) -> SubmissionOutcome:
        with self._registry.locked(document_id) as entry:
            if entry is None:
                return SubmissionOutcome(success=False, error=f"Document {document_id} not found")
            if entry.status not in SUBMITTABLE_STATUSES:
                return SubmissionOutcome(
                    success=False,
                    error=(
                        f"Document cannot be submitted from {entry.status.value} status. "
                        "Must be VALIDATED or SIGNED."
                    ),
                    document=entry,
                )
            if not entry.xml:
                return SubmissionOutcome(
                    success=False,
                    error="Document XML not generated. Call set_document_xml first.",
                    document=entry,
                )
            if self.gateway is None:
                return SubmissionOutcome(
                    success=False, error="No transmission gateway configured", document=entry
                )
            with self._inflight_lock:
                if document_id in self._submitting:
                    return SubmissionOutcome(
                        success=False, error="Document submission already in progress", document=entry
                    )
                self._submitting.add(document_id)
            request = (
                entry.sender,
                entry.receiver,
                entry.document_type,
                entry.process,
                entry.xml,
                {"documentId": entry.document_id, "documentNumber": entry.document.id},
            )

        try:
            return self._send_and_record(document_id, request)
        finally:
            with self._inflight_lock:
                self._submitting.discard(document_id)

    def _send_and_record(self, document_id: str, request: Tuple) -> SubmissionOutcome:
        try:
            result = self.gateway.send(*request)
        except Exception as exc:
            logger.exception("Transmission gateway raised", extra={"document_id": document_id})
            result = SendResult(
                success=False, error=GatewayError("SEND_FAILED", str(exc) or type(exc).__name__)
            )

        with self._registry.locked(document_id) as entry:
            if entry is None:
                logger.error(
                    "Document removed during submission",
                    extra={"document_id": document_id, "message_id": result.message_id},
                )
                return SubmissionOutcome(
                    success=False,
                    message_id=result.message_id,
                    error="Document removed during submission",
                )
            if result.success:
                event = self._transition_locked(
                    entry,
                    DocumentStatus.SUBMITTED,
                    f"Document submitted to Peppol network. Message ID: {result.message_id}",
                    None,
                )
                if event is not None:
                    entry.access_point_message_id = result.message_id
                    error = None
                else:
                    logger.error(
                        "Document status changed during submission",
                        extra={
                            "document_id": document_id,
                            "message_id": result.message_id,
                            "status": entry.status.value,
                        },
                    )
                    error = "Document status changed during submission"
            else:
                error = result.error.message if result.error is not None else "Unknown send error"
                event = self._transition_locked(
                    entry, DocumentStatus.FAILED, f"Submission failed: {error}", None
                )

        if event is not None:
            self._notify(event)
        return SubmissionOutcome(
            success=error is None,
            message_id=result.message_id,
            error=error,
            document=self._registry.get(document_id),
        )

    def refresh_document_status(self, document_id: str) -> Optional[PeppolDocument]:
        """Gleicht den Status mit dem Access Point ab; ``None`` bei unbekannter ID."""

        with self._registry.locked(document_id) as entry:
            if entry is None:
                return None
            message_id = entry.access_point_message_id
        if not message_id or self.gateway is None:
            return entry

        try:
            status: Optional[MessageStatus] = self.gateway.get_status(message_id)
        except Exception:
            logger.exception(
                "Status poll failed", extra={"document_id": document_id, "message_id": message_id}
            )
            return self._registry.get(document_id)
        if status is None:
            return self._registry.get(document_id)

        target = EXTERNAL_STATUS_MAP.get(status.status)
        if target is None:
            logger.warning(
                "Unknown access point status",
                extra={"document_id": document_id, "external_status": status.status},
            )
            return self._registry.get(document_id)

        event = None
        with self._registry.locked(document_id) as entry:
            if entry is None:
                return None
            if entry.status != target:
                event = self._transition_locked(
                    entry,
                    target,
                    status.details or "Status updated from Access Point",
                    ACCESS_POINT_ACTOR,
                )
                if event is not None and target == DocumentStatus.DELIVERED and status.receipt_id:
                    entry.delivery_receipt = DeliveryReceipt(
                        receipt_id=status.receipt_id, timestamp=status.timestamp
                    )
        if event is not None:
            self._notify(event)
        return self._registry.get(document_id)

    # ---------------------------------------------------------------- statistics

    def statistics(self) -> Dict[str, object]:
        by_status = {status.value: 0 for status in DocumentStatus}
        by_type = {kind: 0 for kind in DOCUMENT_KINDS}
        entries = self._registry.values()
        for entry in entries:
            by_status[entry.status.value] += 1
            by_type[entry.document_kind] = by_type.get(entry.document_kind, 0) + 1
        return {"total": len(entries), "by_status": by_status, "by_type": by_type}

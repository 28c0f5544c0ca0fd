"""Dokumentstatus, Übergangstabelle und Registry-Eintrag für Peppol-Dokumente."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from ..dto import Document
from ..participants import DocumentTypeId, Participant, ProcessId
from ..rules import ValidationFinding


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    VALIDATED = "validated"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    DELIVERED = "delivered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"


TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.DRAFT: frozenset({DocumentStatus.VALIDATED, DocumentStatus.FAILED}),
    DocumentStatus.VALIDATED: frozenset(
        {DocumentStatus.SIGNED, DocumentStatus.SUBMITTED, DocumentStatus.FAILED}
    ),
    DocumentStatus.SIGNED: frozenset({DocumentStatus.SUBMITTED, DocumentStatus.FAILED}),
    DocumentStatus.SUBMITTED: frozenset(
        {DocumentStatus.DELIVERED, DocumentStatus.REJECTED, DocumentStatus.FAILED}
    ),
    DocumentStatus.DELIVERED: frozenset({DocumentStatus.ACCEPTED, DocumentStatus.REJECTED}),
    DocumentStatus.ACCEPTED: frozenset(),
    DocumentStatus.REJECTED: frozenset({DocumentStatus.DRAFT}),
    DocumentStatus.FAILED: frozenset({DocumentStatus.DRAFT}),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

SUBMITTABLE_STATUSES = frozenset({DocumentStatus.VALIDATED, DocumentStatus.SIGNED})


def is_valid_transition(source: DocumentStatus, target: DocumentStatus) -> bool:
    return target in TRANSITIONS.get(source, frozenset())


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class StatusHistoryEntry:
    status: DocumentStatus
    timestamp: datetime
    message: Optional[str] = None
    actor: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "timestamp": _iso(self.timestamp),
            "message": self.message,
            "actor": self.actor,
        }


@dataclass(frozen=True)
class StatusChangeEvent:
    document_id: str
    previous_status: DocumentStatus
    new_status: DocumentStatus
    timestamp: datetime
    message: Optional[str] = None
    actor: Optional[str] = None


@dataclass(frozen=True)
class DeliveryReceipt:
    receipt_id: str
    timestamp: datetime


@dataclass
class PeppolDocument:
    """Registry-Eintrag; ``status_history`` wird nur angehängt, nie umgeschrieben."""

    document_id: str
    document_kind: str
    document: Document
    sender: Participant
    receiver: Participant
    document_type: DocumentTypeId
    process: ProcessId
    status: DocumentStatus
    created_at: datetime
    updated_at: datetime
    status_history: List[StatusHistoryEntry] = field(default_factory=list)
    xml: Optional[str] = None
    access_point_message_id: Optional[str] = None
    validation_errors: Optional[List[ValidationFinding]] = None
    delivery_receipt: Optional[DeliveryReceipt] = None

    def record(self, status: DocumentStatus, timestamp: datetime, message: Optional[str] = None,
               actor: Optional[str] = None) -> StatusHistoryEntry:
        entry = StatusHistoryEntry(status=status, timestamp=timestamp, message=message, actor=actor)
        self.status = status
        self.updated_at = timestamp
        self.status_history.append(entry)
        return entry

    def to_dict(self) -> Dict[str, object]:
        return {
            "document_id": self.document_id,
            "document_kind": self.document_kind,
            "document_number": self.document.id,
            "sender": self.sender.to_dict(),
            "receiver": self.receiver.to_dict(),
            "document_type": str(self.document_type),
            "process": str(self.process),
            "status": self.status.value,
            "status_history": [entry.to_dict() for entry in self.status_history],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "has_xml": self.xml is not None,
            "access_point_message_id": self.access_point_message_id,
            "validation_errors": (
                [finding.to_dict() for finding in self.validation_errors]
                if self.validation_errors is not None
                else None
            ),
            "delivery_receipt": (
                {
                    "receipt_id": self.delivery_receipt.receipt_id,
                    "timestamp": _iso(self.delivery_receipt.timestamp),
                }
                if self.delivery_receipt is not None
                else None
            ),
        }

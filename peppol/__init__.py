"""Peppol BIS Billing 3.0: Dokumentmodell, Regeln, UBL-Ausgabe, Lebenszyklus."""

from .dto import CreditNote, Invoice
from .lifecycle import DocumentLifecycleManager, DocumentStatus
from .loader import load_document, load_document_file
from .participants import Participant, format_participant, parse_participant
from .rules import ValidationResult
from .service import PeppolService, SendDocumentResult
from .ubl import render_document
from .validation import validate

__all__ = [
    "CreditNote",
    "DocumentLifecycleManager",
    "DocumentStatus",
    "Invoice",
    "Participant",
    "PeppolService",
    "SendDocumentResult",
    "ValidationResult",
    "format_participant",
    "load_document",
    "load_document_file",
    "parse_participant",
    "render_document",
    "validate",
]

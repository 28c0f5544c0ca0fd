"""Statusmaschine und Registry für Peppol-Dokumente."""

from .manager import (
    EXTERNAL_STATUS_MAP,
    DocumentLifecycleManager,
    SubmissionOutcome,
    ValidationOutcome,
)
from .registry import DocumentRegistry
from .status import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    DeliveryReceipt,
    DocumentStatus,
    PeppolDocument,
    StatusChangeEvent,
    StatusHistoryEntry,
    is_valid_transition,
)

__all__ = [
    "DeliveryReceipt",
    "DocumentLifecycleManager",
    "DocumentRegistry",
    "DocumentStatus",
    "EXTERNAL_STATUS_MAP",
    "PeppolDocument",
    "StatusChangeEvent",
    "StatusHistoryEntry",
    "SubmissionOutcome",
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "ValidationOutcome",
    "is_valid_transition",
]

"""Profilabhängige Validierung: XRechnung-Dokumente über das Overlay, sonst BIS."""

from __future__ import annotations

from .dto import Document
from .rules import ValidationResult, validate_document
from .xrechnung import is_xrechnung
from .xrechnung import validate as validate_xrechnung


def validate(document: Document, **kwargs) -> ValidationResult:
    if is_xrechnung(document):
        return validate_xrechnung(document, **kwargs)
    return validate_document(document, **kwargs)

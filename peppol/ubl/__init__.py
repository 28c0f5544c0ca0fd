"""UBL 2.1 Generatoren für Invoice und CreditNote."""

from ..dto import CREDIT_NOTE_KIND, Document, ensure_kind
from ._xml import escape_xml, format_amount
from .creditnote import RenderError, render_credit_note
from .invoice import render_invoice


def render_document(document: Document) -> str:
    if ensure_kind(document.document_kind) == CREDIT_NOTE_KIND:
        return render_credit_note(document)
    return render_invoice(document)


__all__ = [
    "RenderError",
    "escape_xml",
    "format_amount",
    "render_credit_note",
    "render_document",
    "render_invoice",
]

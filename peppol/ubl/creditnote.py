"""UBL 2.1 Credit Note Generator (Peppol BIS Billing 3.0)."""

from __future__ import annotations

from ..dto import CreditNote
from ._blocks import DocumentLayout, render

CREDIT_NOTE_NAMESPACE = "urn:oasis:names:specification:ubl:schema:xsd:CreditNote-2"

CREDIT_NOTE_LAYOUT = DocumentLayout(
    root="CreditNote",
    namespace=CREDIT_NOTE_NAMESPACE,
    type_code_element="CreditNoteTypeCode",
    line_element="CreditNoteLine",
    quantity_element="CreditedQuantity",
)


class RenderError(ValueError):
    pass


def render_credit_note(credit_note: CreditNote) -> str:
    if credit_note.original_invoice_reference is None:
        raise RenderError(
            f"Credit note {credit_note.id} requires a billing reference to the original invoice"
        )
    return render(credit_note, CREDIT_NOTE_LAYOUT)

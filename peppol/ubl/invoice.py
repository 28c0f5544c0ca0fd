"""UBL 2.1 Invoice Generator (Peppol BIS Billing 3.0)."""

from __future__ import annotations

from ..dto import Invoice
from ._blocks import DocumentLayout, render

INVOICE_NAMESPACE = "urn:oasis:names:specification:ubl:schema:xsd:Invoice-2"

INVOICE_LAYOUT = DocumentLayout(
    root="Invoice",
    namespace=INVOICE_NAMESPACE,
    type_code_element="InvoiceTypeCode",
    line_element="InvoiceLine",
    quantity_element="InvoicedQuantity",
)


def render_invoice(invoice: Invoice) -> str:
    """Rendert die Rechnung deterministisch als UBL-XML (ohne Uhr, ohne Netzwerk)."""

    return render(invoice, INVOICE_LAYOUT, due_date=invoice.due_date)
